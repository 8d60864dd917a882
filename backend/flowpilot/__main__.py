"""Flow Pilot CLI entry point."""

import argparse
import asyncio
import logging
import sys
from decimal import Decimal, InvalidOperation
from pathlib import Path

from dotenv import load_dotenv
from pydantic import ValidationError

env_file = Path(__file__).parent.parent.parent / ".env"
load_dotenv(env_file)

from flowpilot import __version__
from flowpilot.app import FlowPilot
from flowpilot.config import get_settings
from flowpilot.leaderboard import generate_fleets, rank_fleets, user_fleet
from flowpilot.ledger import AgentStrategy, StrategyType, agent_cost
from flowpilot.simulation import PerformanceSimulator

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)

logger = logging.getLogger(__name__)

STRATEGY_CHOICES = [s.value for s in StrategyType]


def _init_logfire() -> None:
    """Initialize Logfire if available, without failing commands."""
    try:
        from flowpilot.observability import initialize_logfire

        initialize_logfire(get_settings())
    except Exception as e:
        logger.warning(f"Failed to initialize Logfire: {e}")


def _decimal(value: str) -> Decimal:
    try:
        return Decimal(value)
    except InvalidOperation:
        raise argparse.ArgumentTypeError(f"not a number: {value}")


def _print_agents(app: FlowPilot) -> None:
    views = app.ledger.views()
    if not views:
        print("  (None)")
        return
    for view in views:
        strategy = view.agent.strategy
        print(
            f"  {view.display.emoji} #{view.id} {view.display.type_label} "
            f"[{view.status}] cost ${view.agent.cost:,.2f}"
        )
        print(
            f"      {strategy.strategy_type} | risk {strategy.risk_tolerance} | "
            f"alloc {strategy.allocation_percent}% | lock {strategy.time_lock_days}d"
        )


def cmd_init(args: argparse.Namespace) -> int:
    """Initialize data directory and configuration file."""
    data_dir = Path("data").resolve()

    try:
        data_dir.mkdir(exist_ok=True)
        logger.info(f"Created data directory: {data_dir}")

        config_path = data_dir / "config.yaml"
        if not config_path.exists():
            config_template = """# Flow Pilot Configuration
# Operational parameters for the local agent ledger.
# Account keys and tokens belong in .env, not here.

ledger:
  demo_initial_balance: 1000.0
  chain_initial_balance: 100.0
  connected_balance: 1000.0
  allow_negative_balance: false
  portfolio_markup: 1.3
  listing_premium: 1.15

wallet:
  access_node_url: https://rest-testnet.onflow.org
  contract_address: "0x8b32c5ecee9fe36f"
  query_timeout_seconds: 5
  submit_timeout_seconds: 60
  demo_mint_latency_seconds: 2
  demo_update_latency_seconds: 1.5

marketplace:
  catalog_size: 16
  catalog_seed: 42

simulation:
  notification_probability: 0.4
  leaderboard_size: 50
"""
            config_path.write_text(config_template)
            logger.info(f"Created config template: {config_path}")
        else:
            logger.info(f"Config file already exists: {config_path}")

        print(f"\n✓ Data directory initialized at {data_dir}")
        print("\nNext steps:")
        print("1. Review and customize data/config.yaml if needed")
        print("2. Run 'python -m flowpilot config' to verify configuration")
        print("3. Run 'python -m flowpilot mint HighestAPY' to mint your first agent\n")

        return 0

    except Exception as e:
        logger.error(f"Failed to initialize: {e}")
        print(f"\n❌ Initialization failed: {e}\n")
        return 1


def cmd_config(args: argparse.Namespace) -> int:
    """Display merged configuration."""
    try:
        settings = get_settings()

        print("\n=== Flow Pilot Configuration ===\n")
        print(f"Data Directory: {settings.data_dir}\n")

        print("Ledger:")
        print(f"  Demo Initial Balance: ${settings.ledger.demo_initial_balance:,.2f}")
        print(f"  Chain Initial Balance: ${settings.ledger.chain_initial_balance:,.2f}")
        print(f"  Connected Balance: ${settings.ledger.connected_balance:,.2f}")
        print(f"  Allow Negative Balance: {settings.ledger.allow_negative_balance}")
        print(f"  Portfolio Markup: {settings.ledger.portfolio_markup}x")
        print(f"  Listing Premium: {settings.ledger.listing_premium}x\n")

        print("Wallet:")
        print(f"  Access Node: {settings.wallet.access_node_url}")
        print(f"  Contract: {settings.wallet.contract_address}")
        print(f"  Account: {settings.wallet.account_address or '(demo only)'}")
        print(f"  Query Timeout: {settings.wallet.query_timeout_seconds}s")
        print(f"  Submit Timeout: {settings.wallet.submit_timeout_seconds}s\n")

        print("Marketplace:")
        print(f"  Catalog Size: {settings.marketplace.catalog_size}")
        print(f"  Catalog Seed: {settings.marketplace.catalog_seed}\n")

        print("API Keys:")
        print(f"  Logfire: {'✓ Set' if settings.logfire_token else '✗ Not set'}\n")

        return 0

    except ValidationError as e:
        print("\n❌ Configuration Error:\n")
        for error in e.errors():
            print(f"  • {'.'.join(str(x) for x in error['loc'])}: {error['msg']}")
        print()
        return 1
    except Exception as e:
        logger.error(f"Failed to load config: {e}")
        print(f"\n❌ Failed to load configuration: {e}\n")
        return 1


def cmd_status(args: argparse.Namespace) -> int:
    """Display mode, balance and agents."""

    async def run() -> None:
        async with FlowPilot.from_data_dir() as app:
            balance = app.ledger.balance()
            print("\n=== Flow Pilot Status ===\n")
            print(f"Mode: {app.mode.state.value}")
            print(f"Address: {app.mode.address}")
            override = " (manual)" if app.ledger.is_balance_overridden() else ""
            print(f"Balance: ${balance:,.2f}{override}")
            print(f"Portfolio Value: ${app.ledger.value_portfolio():,.2f}")
            print(f"Fleet Listed: {'yes' if app.marketplace.is_fleet_listed() else 'no'}")
            print(f"Bought Fleets: {len(app.marketplace.bought_fleets())}\n")
            print(f"Agents: {len(app.ledger.list_agents())}")
            _print_agents(app)
            print()

    try:
        asyncio.run(run())
        return 0
    except Exception as e:
        logger.error(f"Failed to read status: {e}")
        print(f"\n❌ Failed to read status: {e}\n")
        return 1


def cmd_agents(args: argparse.Namespace) -> int:
    """List minted agents."""

    async def run() -> None:
        async with FlowPilot.from_data_dir() as app:
            print("\n=== Your Agents ===\n")
            _print_agents(app)
            print()

    try:
        asyncio.run(run())
        return 0
    except Exception as e:
        logger.error(f"Failed to list agents: {e}")
        print(f"\n❌ Failed to list agents: {e}\n")
        return 1


def cmd_mint(args: argparse.Namespace) -> int:
    """Mint a new agent."""
    _init_logfire()

    async def run() -> None:
        async with FlowPilot.from_data_dir() as app:
            strategy = AgentStrategy(
                strategy_type=args.strategy_type,
                risk_tolerance=args.risk,
                allocation_percent=args.allocation,
                time_lock_days=args.time_lock,
            )
            print(f"\nMinting {args.strategy_type} for ${agent_cost(args.strategy_type):,.2f}...")
            agent = await app.ledger.mint(args.strategy_type, strategy)
            print(f"✓ Minted agent #{agent.id}")
            print(f"Balance: ${app.ledger.balance():,.2f}\n")

    try:
        asyncio.run(run())
        return 0
    except Exception as e:
        logger.error(f"Mint failed: {e}", exc_info=True)
        print(f"\n❌ Mint failed: {e}\n")
        return 1


def cmd_pause(args: argparse.Namespace) -> int:
    """Pause or resume an agent."""

    async def run() -> None:
        async with FlowPilot.from_data_dir() as app:
            if args.command == "pause":
                status = app.ledger.pause(args.agent_id)
            else:
                status = app.ledger.resume(args.agent_id)
            print(f"\n✓ Agent #{args.agent_id} is {status}\n")

    try:
        asyncio.run(run())
        return 0
    except Exception as e:
        logger.error(f"Failed to {args.command} agent: {e}")
        print(f"\n❌ Failed to {args.command} agent: {e}\n")
        return 1


def cmd_strategy(args: argparse.Namespace) -> int:
    """Update an agent's strategy."""
    _init_logfire()

    async def run() -> None:
        async with FlowPilot.from_data_dir() as app:
            current = app.ledger.get_agent(args.agent_id).strategy
            strategy = AgentStrategy(
                strategy_type=args.strategy_type or current.strategy_type,
                risk_tolerance=args.risk or current.risk_tolerance,
                allocation_percent=(
                    args.allocation if args.allocation is not None else current.allocation_percent
                ),
                time_lock_days=(
                    args.time_lock if args.time_lock is not None else current.time_lock_days
                ),
            )
            agent = await app.ledger.update_strategy(args.agent_id, strategy)
            print(f"\n✓ Updated agent #{agent.id}: {agent.strategy.strategy_type}\n")

    try:
        asyncio.run(run())
        return 0
    except Exception as e:
        logger.error(f"Strategy update failed: {e}", exc_info=True)
        print(f"\n❌ Strategy update failed: {e}\n")
        return 1


def cmd_reset_balance(args: argparse.Namespace) -> int:
    """Manually override the balance."""

    async def run() -> None:
        async with FlowPilot.from_data_dir() as app:
            balance = app.ledger.reset_balance(args.amount)
            print(f"\n✓ Balance reset to ${balance:,.2f}\n")

    try:
        asyncio.run(run())
        return 0
    except Exception as e:
        logger.error(f"Balance reset failed: {e}")
        print(f"\n❌ Balance reset failed: {e}\n")
        return 1


def cmd_refresh_balance(args: argparse.Namespace) -> int:
    """Refresh the balance from the chain."""
    _init_logfire()

    async def run() -> None:
        async with FlowPilot.from_data_dir() as app:
            balance = await app.ledger.refresh_balance()
            print(f"\nBalance: ${balance:,.2f}\n")

    try:
        asyncio.run(run())
        return 0
    except Exception as e:
        logger.error(f"Balance refresh failed: {e}")
        print(f"\n❌ Balance refresh failed: {e}\n")
        return 1


def cmd_connect(args: argparse.Namespace) -> int:
    """Connect the wallet."""
    _init_logfire()

    async def run() -> bool:
        async with FlowPilot.from_data_dir() as app:
            await app.mode.connect()
            if app.mode.is_demo:
                print("\n❌ Wallet connection failed, staying in demo mode\n")
                return False
            print(f"\n✓ Connected {app.mode.address}")
            print(f"Balance: ${app.ledger.balance():,.2f}\n")
            return True

    try:
        return 0 if asyncio.run(run()) else 1
    except Exception as e:
        logger.error(f"Connect failed: {e}")
        print(f"\n❌ Connect failed: {e}\n")
        return 1


def cmd_disconnect(args: argparse.Namespace) -> int:
    """Disconnect the wallet."""

    async def run() -> None:
        async with FlowPilot.from_data_dir() as app:
            await app.mode.disconnect()
            print(f"\n✓ Disconnected, back in demo mode ({app.mode.address})\n")

    try:
        asyncio.run(run())
        return 0
    except Exception as e:
        logger.error(f"Disconnect failed: {e}")
        print(f"\n❌ Disconnect failed: {e}\n")
        return 1


def cmd_list_fleet(args: argparse.Namespace) -> int:
    """List the agent fleet on the marketplace."""

    async def run() -> None:
        async with FlowPilot.from_data_dir() as app:
            app.marketplace.clear_malformed_listings()
            listing = app.marketplace.list_for_sale(args.price)
            print(f"\n✓ Listed {listing.total_agents} agents ({listing.rarity})")
            print(f"Listing ID: {listing.id}")
            print(f"Price: ${listing.price:,.2f}\n")

    try:
        asyncio.run(run())
        return 0
    except Exception as e:
        logger.error(f"Listing failed: {e}")
        print(f"\n❌ Listing failed: {e}\n")
        return 1


def cmd_unlist(args: argparse.Namespace) -> int:
    """Remove an own listing."""

    async def run() -> bool:
        async with FlowPilot.from_data_dir() as app:
            return app.marketplace.unlist(args.listing_id)

    try:
        if asyncio.run(run()):
            print(f"\n✓ Unlisted {args.listing_id}\n")
            return 0
        print(f"\n❌ No listing of yours with id {args.listing_id}\n")
        return 1
    except Exception as e:
        logger.error(f"Unlist failed: {e}")
        print(f"\n❌ Unlist failed: {e}\n")
        return 1


def cmd_market(args: argparse.Namespace) -> int:
    """Browse the marketplace."""

    async def run() -> None:
        async with FlowPilot.from_data_dir() as app:
            fleets = app.marketplace.browse(sort_by=args.sort, filter_by=args.filter)
            print(f"\n=== Marketplace ({len(fleets)} fleets) ===\n")
            for fleet in fleets:
                owner = "yours" if fleet.is_own else fleet.seller
                print(
                    f"  {fleet.id:<28} {fleet.name:<20} {fleet.rarity:<10} "
                    f"${fleet.price:>12,.2f}  {fleet.total_agents:>3} agents  ({owner})"
                )
            print()

    try:
        asyncio.run(run())
        return 0
    except Exception as e:
        logger.error(f"Failed to browse marketplace: {e}")
        print(f"\n❌ Failed to browse marketplace: {e}\n")
        return 1


def cmd_buy(args: argparse.Namespace) -> int:
    """Buy a fleet from the marketplace."""

    async def run() -> None:
        async with FlowPilot.from_data_dir() as app:
            fleet = app.marketplace.purchase(args.listing_id)
            print(f"\n✓ Purchased {fleet.name} for ${fleet.purchase_price:,.2f}\n")

    try:
        asyncio.run(run())
        return 0
    except Exception as e:
        logger.error(f"Purchase failed: {e}")
        print(f"\n❌ Purchase failed: {e}\n")
        return 1


def cmd_leaderboard(args: argparse.Namespace) -> int:
    """Display the fleet leaderboard."""
    try:
        settings = get_settings()
        seed = args.seed if args.seed is not None else settings.simulation.seed
        fleets = generate_fleets(settings.simulation.leaderboard_size, seed)
        ranked = rank_fleets(fleets, args.category)

        print(f"\n=== Leaderboard ({args.category}) ===\n")
        for fleet in ranked[: args.top]:
            print(
                f"  {fleet.rank:>3}. {fleet.name:<16} {fleet.badge:<7} "
                f"success {fleet.success_rate:5.1f}%  eff {fleet.efficiency_score:5.1f}  "
                f"missions {fleet.total_missions:>5}  profit ${fleet.total_profit:>10,.0f}"
            )

        mine = user_fleet(ranked)
        if mine:
            print(f"\nYour fleet: #{mine.rank} ({mine.name})")
        print()
        return 0

    except Exception as e:
        logger.error(f"Leaderboard failed: {e}")
        print(f"\n❌ Leaderboard failed: {e}\n")
        return 1


def cmd_simulate(args: argparse.Namespace) -> int:
    """Run the agent performance simulation."""

    async def run() -> None:
        async with FlowPilot.from_data_dir() as app:
            seed = args.seed if args.seed is not None else app.settings.simulation.seed
            simulator = PerformanceSimulator(
                seed, app.settings.simulation.notification_probability
            )
            views = app.ledger.views()
            profits: dict[str, float] = {}

            print(f"\n=== Simulating {args.ticks} ticks for {len(views)} agents ===\n")
            for _ in range(args.ticks):
                result = simulator.tick(views, profits)
                profits = result.profits
                if result.notification:
                    print(f"  • {result.notification}")

            print("\nProfits:")
            for view in views:
                print(f"  #{view.id} {view.display.type_label:<32} ${profits.get(str(view.id), 0.0):,.2f}")
            print()

    try:
        asyncio.run(run())
        return 0
    except Exception as e:
        logger.error(f"Simulation failed: {e}")
        print(f"\n❌ Simulation failed: {e}\n")
        return 1


def main() -> int:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Flow Pilot: local ledger for yield-farming automation agents",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"Flow Pilot {__version__}",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    parser_init = subparsers.add_parser(
        "init",
        help="Initialize data directory and configuration file",
    )
    parser_init.set_defaults(func=cmd_init)

    parser_config = subparsers.add_parser(
        "config",
        help="Display merged configuration",
    )
    parser_config.set_defaults(func=cmd_config)

    parser_status = subparsers.add_parser(
        "status",
        help="Display mode, balance and agents",
    )
    parser_status.set_defaults(func=cmd_status)

    parser_agents = subparsers.add_parser(
        "agents",
        help="List minted agents",
    )
    parser_agents.set_defaults(func=cmd_agents)

    parser_mint = subparsers.add_parser(
        "mint",
        help="Mint a new agent",
    )
    parser_mint.add_argument("strategy_type", choices=STRATEGY_CHOICES)
    parser_mint.add_argument("--risk", choices=["Low", "Medium", "High"], default="Medium")
    parser_mint.add_argument("--allocation", type=_decimal, default=Decimal("50"))
    parser_mint.add_argument("--time-lock", type=int, default=30)
    parser_mint.set_defaults(func=cmd_mint)

    for name, help_text in (("pause", "Pause an agent"), ("resume", "Resume an agent")):
        parser_pause = subparsers.add_parser(name, help=help_text)
        parser_pause.add_argument("agent_id")
        parser_pause.set_defaults(func=cmd_pause)

    parser_strategy = subparsers.add_parser(
        "strategy",
        help="Update an agent's strategy",
    )
    parser_strategy.add_argument("agent_id")
    parser_strategy.add_argument("--type", dest="strategy_type", choices=STRATEGY_CHOICES)
    parser_strategy.add_argument("--risk", choices=["Low", "Medium", "High"])
    parser_strategy.add_argument("--allocation", type=_decimal)
    parser_strategy.add_argument("--time-lock", type=int)
    parser_strategy.set_defaults(func=cmd_strategy)

    parser_reset = subparsers.add_parser(
        "reset-balance",
        help="Manually override the balance",
    )
    parser_reset.add_argument("amount", nargs="?", type=_decimal)
    parser_reset.set_defaults(func=cmd_reset_balance)

    parser_refresh = subparsers.add_parser(
        "refresh-balance",
        help="Refresh the balance from the chain",
    )
    parser_refresh.set_defaults(func=cmd_refresh_balance)

    parser_connect = subparsers.add_parser(
        "connect",
        help="Connect the configured wallet",
    )
    parser_connect.set_defaults(func=cmd_connect)

    parser_disconnect = subparsers.add_parser(
        "disconnect",
        help="Disconnect the wallet and return to demo mode",
    )
    parser_disconnect.set_defaults(func=cmd_disconnect)

    parser_list = subparsers.add_parser(
        "list-fleet",
        help="List your agent fleet for sale",
    )
    parser_list.add_argument("--price", type=_decimal, help="Defaults to the recommended price")
    parser_list.set_defaults(func=cmd_list_fleet)

    parser_unlist = subparsers.add_parser(
        "unlist",
        help="Remove one of your listings",
    )
    parser_unlist.add_argument("listing_id")
    parser_unlist.set_defaults(func=cmd_unlist)

    parser_market = subparsers.add_parser(
        "market",
        help="Browse marketplace listings",
    )
    parser_market.add_argument("--sort", choices=["price", "rarity", "newest"], default="newest")
    parser_market.add_argument(
        "--filter", choices=["all", "rare", "epic", "legendary"], default="all"
    )
    parser_market.set_defaults(func=cmd_market)

    parser_buy = subparsers.add_parser(
        "buy",
        help="Buy a fleet from the marketplace",
    )
    parser_buy.add_argument("listing_id")
    parser_buy.set_defaults(func=cmd_buy)

    parser_leaderboard = subparsers.add_parser(
        "leaderboard",
        help="Display the fleet leaderboard",
    )
    parser_leaderboard.add_argument(
        "--category",
        choices=["overall", "successRate", "efficiency", "missions", "profit"],
        default="overall",
    )
    parser_leaderboard.add_argument("--top", type=int, default=20)
    parser_leaderboard.add_argument("--seed", type=int)
    parser_leaderboard.set_defaults(func=cmd_leaderboard)

    parser_simulate = subparsers.add_parser(
        "simulate",
        help="Simulate agent performance",
    )
    parser_simulate.add_argument("--ticks", type=int, default=10)
    parser_simulate.add_argument("--seed", type=int)
    parser_simulate.set_defaults(func=cmd_simulate)

    args = parser.parse_args()

    if not hasattr(args, "func"):
        parser.print_help()
        return 1

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
