from keel.development.borsh import AccountSchema, anchor_instruction_data
from keel.development.keypair import Keypair
from keel.development.primitive_types import Address

from .accounts import (
    AccountResolver,
    DerivedAccount,
    ResolvedAccounts,
    SeedRef,
    create_program_address,
    find_program_address,
)
from .confirmation import ConfirmationTracker, ExecutionResult
from .exceptions import (
    AccountNotFound,
    AddressDerivationExhausted,
    AssertionMismatch,
    ConfirmationTimeout,
    CyclicAccountReferenceError,
    KeelError,
    MissingSigner,
    ScenarioConflictError,
    SubmissionRejected,
    TransactionFailed,
    TransactionTooLarge,
    UnknownAccountError,
)
from .ledger import (
    AccountHandle,
    InvocationContext,
    LedgerAccount,
    LocalLedger,
    ProgramAbc,
    ProgramError,
)
from .runner import (
    FailurePolicy,
    Scenario,
    ScenarioReport,
    ScenarioRunner,
    ScenarioStep,
    StepResult,
    run_scenarios,
)
from .submitter import Submitter
from .transactions import (
    AccountMeta,
    AccountUse,
    Instruction,
    InstructionCall,
    Transaction,
    TransactionBuilder,
)
from .verifier import AccountExpectation, StateVerifier
