from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Mapping, Union

import tomli
from pydantic import ValidationError

from keel.core import get_logger
from keel.development.borsh import AccountSchema, anchor_instruction_data
from keel.development.keypair import Keypair
from keel.development.primitive_types import Address
from keel.testing.accounts import AccountReference, DerivedAccount, SeedRef
from keel.testing.exceptions import KeelError
from keel.testing.runner import FailurePolicy, Scenario, ScenarioStep
from keel.testing.transactions import AccountUse, InstructionCall
from keel.testing.verifier import AccountExpectation

from .data_model import AccountModel, InstructionModel, ScenarioFile, SchemaModel

logger = get_logger(__name__)


class ScenarioFileError(KeelError):
    """
    A scenario file could not be read or does not describe a valid scenario.
    """


def _location(loc) -> str:
    return ".".join(str(part) for part in loc)


def _address(key: str, value: str) -> Address:
    try:
        return Address(value)
    except ValueError as e:
        raise ScenarioFileError(f"{key}: {e}") from None


def _hex(key: str, value: str) -> bytes:
    try:
        return bytes.fromhex(value[2:] if value.startswith("0x") else value)
    except ValueError:
        raise ScenarioFileError(f"{key}: invalid hex string '{value}'") from None


class ScenarioLoader:
    """
    Builds a `Scenario` from a parsed scenario file. Relative keypair paths are resolved against `base_path`.
    """

    _file: ScenarioFile
    _base_path: Path
    _programs: Dict[str, Address]
    _schemas: Dict[str, AccountSchema]

    def __init__(self, file: ScenarioFile, base_path: Path):
        self._file = file
        self._base_path = base_path
        self._programs = {
            name: _address(f"programs.{name}.id", program.id)
            for name, program in file.programs.items()
        }
        self._schemas = {
            name: self._schema(name, schema) for name, schema in file.schemas.items()
        }

    def _program(self, key: str, name: str) -> Address:
        try:
            return self._programs[name]
        except KeyError:
            raise ScenarioFileError(f"{key}: unknown program '{name}'") from None

    def _schema(self, name: str, schema: SchemaModel) -> AccountSchema:
        fields = [(f.name, f.type) for f in schema.fields]
        try:
            if schema.discriminator is None:
                return AccountSchema.anchor(name, fields)
            return AccountSchema(
                name,
                tuple(fields),
                _hex(f"schemas.{name}.discriminator", schema.discriminator),
            )
        except ValueError as e:
            raise ScenarioFileError(f"schemas.{name}: {e}") from None

    def _account(self, name: str, account: AccountModel) -> AccountReference:
        key = f"accounts.{name}"
        if account.address is not None:
            return _address(f"{key}.address", account.address)
        elif account.keypair is not None:
            path = account.keypair
            if not path.is_absolute():
                path = self._base_path / path
            try:
                return Keypair.from_json_file(path)
            except (OSError, TypeError, ValueError) as e:
                raise ScenarioFileError(f"{key}.keypair: {e}") from None
        elif account.generate:
            return Keypair.generate()

        assert account.seeds is not None and account.program is not None
        seeds = []
        for i, seed in enumerate(account.seeds):
            if seed.str_ is not None:
                seeds.append(seed.str_)
            elif seed.hex is not None:
                seeds.append(_hex(f"{key}.seeds.{i}.hex", seed.hex))
            else:
                seeds.append(SeedRef(seed.account))
        return DerivedAccount(self._program(f"{key}.program", account.program), tuple(seeds))

    def _instruction(self, key: str, ix: InstructionModel) -> InstructionCall:
        if ix.method is not None:
            try:
                data = anchor_instruction_data(
                    ix.method, [(arg.type, arg.value) for arg in ix.args]
                )
            except (TypeError, ValueError) as e:
                raise ScenarioFileError(f"{key}.args: {e}") from None
        else:
            assert ix.data is not None
            data = _hex(f"{key}.data", ix.data)

        return InstructionCall(
            self._program(f"{key}.program", ix.program),
            tuple(AccountUse(a.name, a.writable, a.signer) for a in ix.accounts),
            data,
        )

    def _expectation(self, key: str, schema: str, fields: Mapping[str, Any]) -> AccountExpectation:
        try:
            return AccountExpectation(self._schemas[schema], fields)
        except KeyError:
            raise ScenarioFileError(f"{key}.schema: unknown schema '{schema}'") from None

    def load(self) -> Scenario:
        accounts = {
            name: self._account(name, account)
            for name, account in self._file.accounts.items()
        }

        steps = []
        for i, step in enumerate(self._file.steps):
            key = f"steps.{i}"
            policy = None
            if step.policy is not None:
                policy = FailurePolicy(step.policy, step.retries)
            elif step.retries > 0:
                policy = FailurePolicy.retry(step.retries)

            steps.append(
                ScenarioStep(
                    step.name,
                    tuple(
                        self._instruction(f"{key}.instructions.{j}", ix)
                        for j, ix in enumerate(step.instructions)
                    ),
                    {
                        name: self._expectation(
                            f"{key}.expect.{name}", e.account_schema, e.fields
                        )
                        for name, e in step.expect.items()
                    },
                    policy,
                )
            )

        try:
            return Scenario(
                self._file.scenario.name,
                accounts,
                steps,
                airdrops=self._file.airdrops,
                signers=self._file.scenario.signers,
            )
        except ScenarioFileError:
            raise
        except (KeelError, ValueError) as e:
            raise ScenarioFileError(f"scenario '{self._file.scenario.name}': {e}") from None


def parse_scenario(data: Mapping[str, Any], base_path: Union[str, Path] = ".") -> Scenario:
    try:
        file = ScenarioFile.model_validate(data)
    except ValidationError as e:
        errors = "; ".join(
            f"{_location(err['loc'])}: {err['msg']}" for err in e.errors()
        )
        raise ScenarioFileError(f"Invalid scenario: {errors}") from None
    return ScenarioLoader(file, Path(base_path)).load()


def load_scenario(path: Union[str, Path]) -> Scenario:
    """
    Load a TOML scenario file.

    Raises:
        ScenarioFileError: the file can not be read, parsed or describes an invalid scenario.
            The message names the offending key.
    """
    path = Path(path)
    try:
        with path.open("rb") as f:
            data = tomli.load(f)
    except OSError as e:
        raise ScenarioFileError(f"Cannot read scenario file {path}: {e}") from None
    except tomli.TOMLDecodeError as e:
        raise ScenarioFileError(f"Cannot parse scenario file {path}: {e}") from None

    try:
        scenario = parse_scenario(data, path.parent)
    except ScenarioFileError as e:
        raise ScenarioFileError(f"{path}: {e}") from None
    logger.debug(f"Loaded scenario '{scenario.name}' from {path}")
    return scenario
