from pathlib import Path
from typing import List

from pydantic import BaseModel, ConfigDict, Field
from pydantic.functional_validators import BeforeValidator
from typing_extensions import Annotated

from keel.core.enums import Commitment, FailureActionEnum


class KeelConfigModel(BaseModel):
    model_config = ConfigDict(
        extra="forbid",
        frozen=True,
    )


class GeneralConfig(KeelConfigModel):
    rpc_url: str = "http://127.0.0.1:8899"
    """
    JSON-RPC endpoint of the network scenarios are executed against.
    """
    json_rpc_timeout: float = 15
    """
    Timeout applied to JSON-RPC requests.
    """
    explorer_url: str = "https://explorer.solana.com/tx/{signature}?cluster=custom&customUrl={rpc_url}"
    """
    Format of transaction links printed next to transaction signatures.
    """


class ConfirmationConfig(KeelConfigModel):
    commitment: Commitment = Commitment.CONFIRMED
    """
    Commitment level a transaction must reach to be considered confirmed.
    """
    timeout: float = Field(default=30, gt=0)
    """
    Overall time budget for waiting on a single transaction.
    """
    initial_backoff: float = Field(default=0.25, gt=0)
    """
    Delay before the second status poll.
    """
    max_backoff: float = Field(default=2.0, gt=0)
    """
    Upper bound of the delay between two status polls.
    """
    backoff_factor: float = Field(default=2.0, ge=1)


class SubmissionConfig(KeelConfigModel):
    max_retries: int = Field(default=3, ge=0)
    """
    How many times a network-transient submission error is retried.
    """
    retry_backoff: float = Field(default=0.5, ge=0)
    skip_preflight: bool = False
    """
    Skip transaction simulation on the RPC node. Program errors are then reported by the confirmation tracker instead of the submitter.
    """
    preflight_commitment: Commitment = Commitment.PROCESSED


class RunnerConfig(KeelConfigModel):
    default_policy: FailureActionEnum = FailureActionEnum.ABORT
    """
    What to do with remaining steps after a step fails.
    """
    fetch_logs: bool = True
    """
    Fetch program log lines of confirmed transactions, not only of failed ones.
    """


class TopLevelConfig(KeelConfigModel):
    subconfigs: List[Annotated[Path, BeforeValidator(lambda p: Path(p).resolve())]] = []
    general: GeneralConfig = Field(default_factory=GeneralConfig)
    confirmation: ConfirmationConfig = Field(default_factory=ConfirmationConfig)
    submission: SubmissionConfig = Field(default_factory=SubmissionConfig)
    runner: RunnerConfig = Field(default_factory=RunnerConfig)
