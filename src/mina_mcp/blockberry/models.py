"""
Blockberry zkApp transaction models.

The explorer has returned at least three layouts for the same transaction
over its versions. Each known layout is one variant of a tagged union;
``parse_transaction`` dispatches on field presence exactly once and every
variant normalizes into the same ``TransactionSummary`` that the formatter
reads.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict

# Epoch values above this are milliseconds (1e11 seconds is the year 5138)
EPOCH_MILLIS_THRESHOLD = 100_000_000_000

TIME_FORMAT = "%Y-%m-%d %H:%M:%S UTC"


class TransactionShape(str, Enum):
    """Known upstream layouts of a zkApp transaction."""

    SINGLE = "single"
    LIST_ITEM = "list_item"
    LEGACY = "legacy"
    UNKNOWN = "unknown"


class UpstreamModel(BaseModel):
    """Base for upstream payloads: unknown fields are kept, never rejected."""

    model_config = ConfigDict(extra="allow")


class ScamFlag(UpstreamModel):
    """Advisory annotation attached to an address by the explorer."""

    scamId: Optional[Union[int, str]] = None
    objectType: Optional[str] = None
    onchainId: Optional[Union[str, int]] = None
    defaultSecurityMessage: Optional[str] = None
    securityMessage: Optional[str] = None
    scamType: Optional[str] = None

    @property
    def message(self) -> str:
        return self.securityMessage or self.defaultSecurityMessage or "Flagged as suspicious"


class Failure(UpstreamModel):
    index: Optional[int] = None
    failureReason: Optional[Any] = None


class StateUpdate(UpstreamModel):
    appState: Optional[List[Optional[str]]] = None


class UpdatedAccount(UpstreamModel):
    """One entry of ``updatedAccounts`` in the current layouts."""

    accountAddress: Optional[str] = None
    accountName: Optional[str] = None
    isZkappAccount: Optional[bool] = None
    balanceChange: Optional[float] = None
    balanceChangeUsd: Optional[float] = None
    tokenId: Optional[str] = None
    callData: Optional[Union[str, int]] = None
    callDepth: Optional[int] = None
    appState: Optional[List[Optional[str]]] = None
    update: Optional[StateUpdate] = None
    accountScam: Optional[ScamFlag] = None

    @property
    def app_state(self) -> List[Optional[str]]:
        if self.update and self.update.appState:
            return self.update.appState
        return self.appState or []


class LegacyFeePayerBody(UpstreamModel):
    publicKey: Optional[str] = None
    # Nanomina, as a string or a number depending on the explorer version
    fee: Optional[Union[str, int, float]] = None
    nonce: Optional[int] = None


class LegacyFeePayer(UpstreamModel):
    body: Optional[LegacyFeePayerBody] = None


class LegacyAccountUpdateBody(UpstreamModel):
    publicKey: Optional[str] = None
    update: Optional[StateUpdate] = None


class LegacyAccountUpdate(UpstreamModel):
    body: Optional[LegacyAccountUpdateBody] = None


class ZkappCommand(UpstreamModel):
    feePayer: Optional[LegacyFeePayer] = None
    accountUpdates: Optional[List[LegacyAccountUpdate]] = None


@dataclass
class AccountSummary:
    """Display fields of one updated account, independent of layout."""

    address: str
    name: Optional[str] = None
    is_zkapp: bool = False
    balance_change: Optional[float] = None
    balance_change_usd: Optional[float] = None
    token_id: Optional[str] = None
    call_data: Optional[Union[str, int]] = None
    call_depth: Optional[int] = None
    app_state: List[Optional[str]] = field(default_factory=list)
    scam: Optional[ScamFlag] = None

    @property
    def display_name(self) -> str:
        return self.name or self.address


@dataclass
class TransactionSummary:
    """Normalized view of a transaction; the only input of the formatter."""

    shape: TransactionShape
    hash: str = "Unknown"
    block_height: Optional[int] = None
    status: str = "Unknown"
    time: str = "Unknown"
    fee: Optional[float] = None
    fee_usd: Optional[float] = None
    nonce: Optional[int] = None
    memo: str = "None"
    payer: str = "Unknown"
    payer_scam: Optional[ScamFlag] = None
    is_account_hijack: bool = False
    accounts: List[AccountSummary] = field(default_factory=list)
    updates_count: Optional[int] = None
    failure_reason: Optional[Any] = None
    failures: Optional[List[Failure]] = None

    @property
    def account_count(self) -> int:
        if self.updates_count is not None:
            return self.updates_count
        return len(self.accounts)


def format_epoch(value: float) -> str:
    """Render an epoch value (seconds or milliseconds) as a UTC date string."""
    seconds = value / 1000 if value > EPOCH_MILLIS_THRESHOLD else value
    return datetime.fromtimestamp(seconds, tz=timezone.utc).strftime(TIME_FORMAT)


def format_iso_datetime(value: str) -> str:
    """Render an ISO-8601 date string as a UTC date string; unparseable input is kept."""
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return value

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc).strftime(TIME_FORMAT)


class TransactionRecord(UpstreamModel):
    """Fields shared by every layout; all of them optional."""

    shape: TransactionShape = TransactionShape.UNKNOWN

    hash: Optional[str] = None
    txHash: Optional[str] = None
    blockHeight: Optional[int] = None
    status: Optional[str] = None
    txStatus: Optional[str] = None
    failureReason: Optional[Any] = None
    failures: Optional[List[Failure]] = None

    age: Optional[float] = None
    dateTime: Optional[str] = None
    timestamp: Optional[float] = None

    fee: Optional[float] = None
    feeUsd: Optional[float] = None
    nonce: Optional[int] = None
    memo: Optional[str] = None

    proverAddress: Optional[str] = None
    proverName: Optional[str] = None
    feePayerAddress: Optional[str] = None
    feePayerName: Optional[str] = None
    proverScam: Optional[ScamFlag] = None
    feePayerScam: Optional[ScamFlag] = None

    isAccountHijack: Optional[bool] = None
    isZkappAccount: Optional[bool] = None
    updatesCount: Optional[int] = None
    updatedAccounts: Optional[List[UpdatedAccount]] = None
    zkappCommand: Optional[ZkappCommand] = None

    def resolve_hash(self) -> str:
        return self.txHash or self.hash or "Unknown"

    def resolve_status(self) -> str:
        return self.status or self.txStatus or "Unknown"

    def resolve_time(self) -> str:
        if self.age is not None:
            age = int(self.age) if float(self.age).is_integer() else self.age
            return f"{age} seconds ago"
        if self.dateTime:
            return format_iso_datetime(self.dateTime)
        if self.timestamp is not None:
            return format_epoch(self.timestamp)
        return "Unknown"

    def resolve_memo(self) -> str:
        if not self.memo or self.memo == "None":
            return "None"
        return self.memo

    def resolve_payer(self) -> str:
        if self.proverAddress:
            return _named_address(self.proverName, self.proverAddress)
        if self.feePayerAddress:
            return _named_address(self.feePayerName, self.feePayerAddress)
        legacy_key = self._legacy_fee_payer_key()
        if legacy_key:
            return legacy_key
        return "Unknown"

    def _legacy_fee_payer_key(self) -> Optional[str]:
        command = self.zkappCommand
        if command and command.feePayer and command.feePayer.body:
            return command.feePayer.body.publicKey
        return None

    def resolve_nonce(self) -> Optional[int]:
        return self.nonce

    def resolve_accounts(self) -> List[AccountSummary]:
        return [_summarize_updated_account(acc) for acc in self.updatedAccounts or []]

    def normalize(self) -> TransactionSummary:
        return TransactionSummary(
            shape=self.shape,
            hash=self.resolve_hash(),
            block_height=self.blockHeight,
            status=self.resolve_status(),
            time=self.resolve_time(),
            fee=self.fee,
            fee_usd=self.feeUsd,
            nonce=self.resolve_nonce(),
            memo=self.resolve_memo(),
            payer=self.resolve_payer(),
            payer_scam=self.proverScam or self.feePayerScam,
            is_account_hijack=bool(self.isAccountHijack),
            accounts=self.resolve_accounts(),
            updates_count=self.updatesCount,
            failure_reason=self.failureReason,
            failures=self.failures,
        )


def _named_address(name: Optional[str], address: str) -> str:
    return f"{name} ({address})" if name else address


def _summarize_updated_account(account: UpdatedAccount) -> AccountSummary:
    return AccountSummary(
        address=account.accountAddress or "Unknown",
        name=account.accountName,
        is_zkapp=bool(account.isZkappAccount),
        balance_change=account.balanceChange,
        balance_change_usd=account.balanceChangeUsd,
        token_id=account.tokenId,
        call_data=account.callData,
        call_depth=account.callDepth,
        app_state=list(account.app_state),
        scam=account.accountScam,
    )


class SingleTransaction(TransactionRecord):
    """Layout returned by the transaction-by-hash endpoint."""

    shape: Literal[TransactionShape.SINGLE] = TransactionShape.SINGLE


class ListedTransaction(TransactionRecord):
    """Layout of one item returned by the listing endpoint."""

    shape: Literal[TransactionShape.LIST_ITEM] = TransactionShape.LIST_ITEM


class LegacyTransaction(TransactionRecord):
    """Older layout carrying the raw zkApp command."""

    shape: Literal[TransactionShape.LEGACY] = TransactionShape.LEGACY

    def resolve_nonce(self) -> Optional[int]:
        if self.nonce is not None:
            return self.nonce
        command = self.zkappCommand
        if command and command.feePayer and command.feePayer.body:
            return command.feePayer.body.nonce
        return None

    def resolve_accounts(self) -> List[AccountSummary]:
        accounts = []
        for update in (self.zkappCommand.accountUpdates if self.zkappCommand else None) or []:
            body = update.body or LegacyAccountUpdateBody()
            app_state = body.update.appState if body.update and body.update.appState else []
            accounts.append(
                AccountSummary(address=body.publicKey or "Unknown", app_state=list(app_state))
            )
        return accounts


class UnknownTransaction(TransactionRecord):
    """Fallback when no known layout matches; only the shared fields render."""

    shape: Literal[TransactionShape.UNKNOWN] = TransactionShape.UNKNOWN


Transaction = Union[SingleTransaction, ListedTransaction, LegacyTransaction, UnknownTransaction]

_VARIANTS = {
    TransactionShape.SINGLE: SingleTransaction,
    TransactionShape.LIST_ITEM: ListedTransaction,
    TransactionShape.LEGACY: LegacyTransaction,
    TransactionShape.UNKNOWN: UnknownTransaction,
}


def detect_shape(raw: Dict[str, Any]) -> TransactionShape:
    """
    Detect which upstream layout a raw record uses.

    Detection is a best-effort heuristic over populated fields, checked in
    priority order: single transaction, list item, legacy command.
    """
    command = raw.get("zkappCommand")
    command_has_content = isinstance(command, dict) and bool(
        command.get("feePayer") or command.get("accountUpdates")
    )
    # An empty updatedAccounts list defers to a populated legacy command
    accounts = raw.get("updatedAccounts")
    has_accounts = isinstance(accounts, list) and (bool(accounts) or not command_has_content)

    if has_accounts and (raw.get("txHash") or raw.get("hash")):
        return TransactionShape.SINGLE

    if has_accounts and raw.get("age") is not None:
        return TransactionShape.LIST_ITEM

    if command_has_content:
        return TransactionShape.LEGACY

    return TransactionShape.UNKNOWN


def parse_transaction(raw: Dict[str, Any]) -> Transaction:
    """Validate a raw upstream record into exactly one layout variant."""
    shape = detect_shape(raw)
    data = {key: value for key, value in raw.items() if key != "shape"}
    return _VARIANTS[shape].model_validate(data)
