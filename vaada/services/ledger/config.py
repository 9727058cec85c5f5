from pydantic import BaseModel

from .models import GoalKind


class LedgerConfig(BaseModel):
    """Configuration for the on-chain goal ledger client."""

    rpc_url: str = "https://base.publicnode.com"
    chain_id: int = 8453  # Base mainnet
    goal_stake_address: str = "0xAc67E863221B703CEE9B440a7beFe71EA8725434"
    automation_address: str = "0xA6BcEcA41fCF743324a864F47dd03F0D3806341D"
    receipts_address: str = "0x2743327fa1EeDF92793608d659b7eEC428252dA2"
    request_timeout_seconds: float = 30.0
    receipt_timeout_seconds: float = 120.0
    # Floor for the receipt wait when a run budget is nearly spent
    min_receipt_timeout_seconds: float = 15.0
    # Fixed-point decimals the contract expects for achieved values
    distance_decimals: int = 0
    steps_decimals: int = 0

    def decimals_for(self, kind: GoalKind) -> int:
        if kind is GoalKind.STEPS:
            return self.steps_decimals
        return self.distance_decimals
