import pytest

from keel.development.borsh import AccountSchema, anchor_instruction_discriminator
from keel.development.primitive_types import Address
from keel.testing import (
    AccountExpectation,
    AccountUse,
    DerivedAccount,
    InstructionCall,
    Keypair,
    LocalLedger,
    ProgramAbc,
    ProgramError,
    Scenario,
    ScenarioRunner,
    ScenarioStep,
    SeedRef,
    Submitter,
    anchor_instruction_data,
)
from keel.testing.confirmation import ConfirmationTracker
from keel.testing.ledger import InvocationContext
from keel.testing.system_program import LAMPORTS_PER_SOL, SYSTEM_PROGRAM_ID

COUNTER_PROGRAM_ID = Address("8sHV6MjJSkemTc34PXrymjmungpjgf7b1np52eSnoLBx")
COUNTER = AccountSchema.anchor("Counter", [("count", "u64"), ("bump", "u8")])
COUNTER_SPACE = 8 + 8 + 1
INVALID_AMOUNT = 6000


class CounterProgram(ProgramAbc):
    program_id = COUNTER_PROGRAM_ID

    def process(self, ctx: InvocationContext, data: bytes) -> None:
        discriminator, args = data[:8], data[8:]
        counter, user = ctx.accounts[:2]

        if not user.is_signer:
            raise ProgramError(3010, "AnchorError: AccountNotSigner")

        if discriminator == anchor_instruction_discriminator("initialize"):
            ctx.log("Instruction: Initialize")
            address, bump = ctx.find_program_address([b"counter", bytes(user.address)])
            if counter.address != address:
                raise ProgramError(2006, "AnchorError: ConstraintSeeds")
            ctx.create_account(
                counter,
                user,
                COUNTER_SPACE,
                seeds=[b"counter", bytes(user.address), bytes([bump])],
            )
            counter.data[:] = COUNTER.encode({"count": 0, "bump": bump})
            return

        if counter.owner != self.program_id:
            raise ProgramError(3007, "AnchorError: AccountOwnedByWrongProgram")
        state = COUNTER.decode(bytes(counter.data))
        amount = int.from_bytes(args[:8], "little")

        if discriminator == anchor_instruction_discriminator("increment"):
            ctx.log("Instruction: Increment")
            if not (amount > 0 and amount >= state["count"]):
                raise self._invalid_amount()
            state["count"] += amount
        elif discriminator == anchor_instruction_discriminator("decrement"):
            ctx.log("Instruction: Decrement")
            if not (amount > 0 and amount <= state["count"]):
                raise self._invalid_amount()
            state["count"] -= amount
        else:
            raise ProgramError(101, "AnchorError: InstructionFallbackNotFound")

        counter.data[:] = COUNTER.encode(state)

    @staticmethod
    def _invalid_amount() -> ProgramError:
        return ProgramError(
            INVALID_AMOUNT,
            "AnchorError thrown in programs/counter-program/src/lib.rs. "
            "Error Code: InvalidAmount. Error Number: 6000. Error Message: Amount must be greater than 0.",
        )


def counter_call(method: str, *args) -> InstructionCall:
    return InstructionCall(
        COUNTER_PROGRAM_ID,
        (
            AccountUse("counter", writable=True),
            AccountUse("user", writable=True, signer=True),
            AccountUse("system_program"),
        ),
        anchor_instruction_data(method, [("u64", a) for a in args]),
    )


def counter_step(name: str, method: str, *args, expected_count=None, policy=None) -> ScenarioStep:
    expect = {}
    if expected_count is not None:
        expect["counter"] = AccountExpectation(COUNTER, {"count": expected_count})
    return ScenarioStep(name, (counter_call(method, *args),), expect, policy)


def counter_scenario(name: str, user: Keypair, steps) -> Scenario:
    return Scenario(
        name,
        {
            "user": user,
            "counter": DerivedAccount(COUNTER_PROGRAM_ID, ("counter", SeedRef("user"))),
            "system_program": SYSTEM_PROGRAM_ID,
        },
        steps,
        airdrops={"user": 10 * LAMPORTS_PER_SOL},
    )


@pytest.fixture()
def ledger():
    return LocalLedger([CounterProgram()])


@pytest.fixture()
def user():
    return Keypair.generate()


@pytest.fixture()
def runner(ledger):
    return ScenarioRunner(
        ledger,
        confirmation_timeout=5,
        submitter=Submitter(ledger, retry_backoff=0.01),
        tracker=ConfirmationTracker(ledger, initial_backoff=0.01, max_backoff=0.05),
    )
