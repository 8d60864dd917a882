"""Configuration management using Pydantic Settings."""

import logging
from decimal import Decimal
from functools import lru_cache
from pathlib import Path

import yaml
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from flowpilot.services.wallet.config import WalletConfig

logger = logging.getLogger(__name__)


class LedgerConfig(BaseModel):
    """Balance and valuation parameters for the agent ledger."""

    demo_initial_balance: Decimal = Decimal("1000.0")
    chain_initial_balance: Decimal = Decimal("100.0")  # AgentNFT balance script default
    connected_balance: Decimal = Decimal("1000.0")
    allow_negative_balance: bool = False
    portfolio_markup: Decimal = Decimal("1.3")
    listing_premium: Decimal = Decimal("1.15")


class MarketplaceConfig(BaseModel):
    """Marketplace catalog parameters."""

    catalog_size: int = 16
    catalog_seed: int | None = None


class SimulationConfig(BaseModel):
    """Decorative performance simulation parameters."""

    seed: int | None = None
    notification_probability: float = 0.4
    leaderboard_size: int = 50


class Settings(BaseSettings):
    """Main configuration class."""

    # Paths
    data_dir: Path = Path("data")

    # API Keys
    logfire_token: str = ""

    # Nested configuration sections
    ledger: LedgerConfig = Field(default_factory=LedgerConfig)
    wallet: WalletConfig = Field(default_factory=WalletConfig)
    marketplace: MarketplaceConfig = Field(default_factory=MarketplaceConfig)
    simulation: SimulationConfig = Field(default_factory=SimulationConfig)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("data_dir", mode="after")
    @classmethod
    def resolve_data_dir(cls, v: Path) -> Path:
        """Resolve data directory to absolute path."""
        return v.resolve()

    def load_yaml_config(self) -> None:
        """Load and merge YAML configuration."""
        config_path = self.data_dir / "config.yaml"

        if not config_path.exists():
            logger.warning(
                f"Config file not found: {config_path}. "
                "Using defaults. Run 'python -m flowpilot init' to create it."
            )
            return

        try:
            with open(config_path, "r", encoding="utf-8") as f:
                yaml_config = yaml.safe_load(f)

            if not yaml_config:
                logger.warning(f"Empty config file: {config_path}")
                return

            for section_name in ["ledger", "wallet", "marketplace", "simulation"]:
                if section_name in yaml_config:
                    section = getattr(self, section_name)
                    yaml_section = yaml_config[section_name] or {}

                    section_dict = section.model_dump()
                    section_dict.update(yaml_section)

                    new_section = section.__class__(**section_dict)
                    setattr(self, section_name, new_section)

            logger.info(f"Loaded configuration from {config_path}")

        except yaml.YAMLError as e:
            logger.error(f"Failed to parse YAML config: {e}")
            raise
        except Exception as e:
            logger.error(f"Failed to load config: {e}")
            raise


@lru_cache()
def get_settings() -> Settings:
    """Get singleton Settings instance."""
    settings = Settings()
    settings.load_yaml_config()
    return settings
