"""Agent ledger exceptions."""


class LedgerError(Exception):
    """Base exception for ledger operations."""

    pass


class AgentNotFoundError(LedgerError):
    """No agent with the requested id exists in the active ledger."""

    def __init__(self, agent_id: int | str):
        super().__init__(f"Agent not found: {agent_id}")
        self.agent_id = agent_id


class LedgerBusyError(LedgerError):
    """A mutation was attempted while another one is still pending."""

    pass
