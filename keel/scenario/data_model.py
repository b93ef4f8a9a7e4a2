from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from typing_extensions import Annotated

from keel.core.enums import FailureActionEnum
from keel.development.borsh import check_type


class ScenarioFileModel(BaseModel):
    model_config = ConfigDict(
        extra="forbid",
        frozen=True,
        populate_by_name=True,
    )


class ScenarioHeader(ScenarioFileModel):
    name: str
    signers: Optional[List[str]] = None
    """
    Keypair accounts allowed to sign. All keypair accounts sign when omitted.
    """


class ProgramModel(ScenarioFileModel):
    id: str


class SeedModel(ScenarioFileModel):
    str_: Optional[str] = Field(default=None, alias="str")
    hex: Optional[str] = None
    account: Optional[str] = None

    @model_validator(mode="after")
    def check_exactly_one(self):
        given = [v for v in (self.str_, self.hex, self.account) if v is not None]
        if len(given) != 1:
            raise ValueError("seed must set exactly one of 'str', 'hex' or 'account'")
        return self


class AccountModel(ScenarioFileModel):
    address: Optional[str] = None
    keypair: Optional[Path] = None
    generate: bool = False
    seeds: Optional[Annotated[List[SeedModel], Field(min_length=1)]] = None
    program: Optional[str] = None

    @model_validator(mode="after")
    def check_kind(self):
        kinds = [
            self.address is not None,
            self.keypair is not None,
            self.generate,
            self.seeds is not None,
        ]
        if sum(kinds) != 1:
            raise ValueError(
                "account must set exactly one of 'address', 'keypair', 'generate' or 'seeds'"
            )
        if (self.seeds is not None) != (self.program is not None):
            raise ValueError("'seeds' and 'program' must be given together")
        return self


class FieldModel(ScenarioFileModel):
    name: str
    type: str

    @field_validator("type")
    @classmethod
    def check_field_type(cls, v: str) -> str:
        return check_type(v)


class SchemaModel(ScenarioFileModel):
    fields: List[FieldModel]
    discriminator: Optional[str] = None
    """
    Hex encoded account discriminator. Anchor discriminator of the schema name by default.
    """


class ArgModel(ScenarioFileModel):
    type: str
    value: Any

    @field_validator("type")
    @classmethod
    def check_arg_type(cls, v: str) -> str:
        return check_type(v)


class AccountUseModel(ScenarioFileModel):
    name: str
    writable: bool = False
    signer: bool = False


class InstructionModel(ScenarioFileModel):
    program: str
    method: Optional[str] = None
    data: Optional[str] = None
    """
    Hex encoded raw instruction data, used instead of `method` and `args`.
    """
    accounts: List[AccountUseModel] = []
    args: List[ArgModel] = []

    @model_validator(mode="after")
    def check_data(self):
        if (self.method is None) == (self.data is None):
            raise ValueError("instruction must set exactly one of 'method' or 'data'")
        if self.data is not None and len(self.args) > 0:
            raise ValueError("'args' can only be used together with 'method'")
        return self


class ExpectModel(ScenarioFileModel):
    account_schema: str = Field(alias="schema")
    fields: Dict[str, Any] = {}


class StepModel(ScenarioFileModel):
    name: str
    policy: Optional[FailureActionEnum] = None
    retries: Annotated[int, Field(ge=0)] = 0
    instructions: Annotated[List[InstructionModel], Field(min_length=1)]
    expect: Dict[str, ExpectModel] = {}


class ScenarioFile(ScenarioFileModel):
    scenario: ScenarioHeader
    programs: Dict[str, ProgramModel] = {}
    accounts: Dict[str, AccountModel] = {}
    schemas: Dict[str, SchemaModel] = {}
    airdrops: Dict[str, Annotated[int, Field(gt=0)]] = {}
    steps: List[StepModel] = []
