"""
Text rendering of zkApp transactions.

``format_transaction`` is pure: it parses a raw upstream record into its
layout variant once, normalizes it, and renders either a concise summary
(used for listings) or a verbose report. It never raises.
"""

from typing import Any, Dict, List, Optional

from .models import AccountSummary, TransactionSummary, parse_transaction

NATIVE_UNIT = "MINA"
MINA_DECIMALS = 9

HIJACK_WARNING = "⚠️ Possible account hijacking detected"
ACCOUNT_SCAM_WARNING = "⚠️ Updated account security concern"
GENERIC_FAILURE = "Transaction failed (no reason given)"


def format_amount(value: float) -> str:
    """Render a token amount without float noise or exponent notation."""
    if float(value).is_integer():
        return str(int(value))
    return f"{value:.{MINA_DECIMALS}f}".rstrip("0").rstrip(".")


def format_fee(amount: Optional[float], usd: Optional[float]) -> str:
    if amount is None:
        return "Unknown"
    text = f"{format_amount(amount)} {NATIVE_UNIT}"
    if usd is not None:
        sign = "-" if usd < 0 else ""
        text += f" ({sign}${format_amount(abs(usd))} USD)"
    return text


def format_reason(reason: Any) -> str:
    if isinstance(reason, (list, tuple)):
        return ", ".join(str(item) for item in reason)
    return str(reason)


def security_warnings(summary: TransactionSummary) -> List[str]:
    """Warnings in fixed order: hijack, fee payer scam, updated account scam."""
    warnings = []
    if summary.is_account_hijack:
        warnings.append(HIJACK_WARNING)
    if summary.payer_scam:
        warnings.append(f"⚠️ Fee payer security: {summary.payer_scam.message}")
    if any(account.scam for account in summary.accounts):
        warnings.append(ACCOUNT_SCAM_WARNING)
    return warnings


def failure_lines(summary: TransactionSummary) -> List[str]:
    """
    Failure lines for the whole transaction.

    Per-index failures win over a single reason; a failed status with
    neither gets a generic line; anything else has no failure section.
    """
    if summary.failures:
        return [
            f"  - Index {failure.index}: {format_reason(failure.failureReason)}"
            for failure in summary.failures
        ]
    if summary.failure_reason:
        return [f"  - {format_reason(summary.failure_reason)}"]

    status = summary.status.lower()
    if "failed" in status or "error" in status:
        return [f"  - {GENERIC_FAILURE}"]
    return []


def _account_failures(summary: TransactionSummary, position: int) -> List[str]:
    return [
        format_reason(failure.failureReason)
        for failure in summary.failures or []
        if failure.index == position
    ]


def _has_call_data(call_data: Any) -> bool:
    return call_data not in (None, "", "0", 0)


def format_account(summary: TransactionSummary, account: AccountSummary, position: int) -> str:
    """Render one updated account block of the verbose report."""
    suffix = " (zkApp account)" if account.is_zkapp else ""
    lines = [
        f"  Account Update #{position + 1}:",
        f"    Name: {account.name or 'Unnamed Account'}{suffix}",
        f"    Address: {account.address}",
    ]

    if account.balance_change is not None:
        lines.append(
            f"    Balance Change: {format_fee(account.balance_change, account.balance_change_usd)}"
        )
    if account.token_id:
        lines.append(f"    Token ID: {account.token_id}")
    if _has_call_data(account.call_data):
        lines.append(f"    Call Data: {account.call_data}")
    if account.call_depth is not None:
        lines.append(f"    Call Depth: {account.call_depth}")

    states = [
        f"      - State[{index}]: {value}"
        for index, value in enumerate(account.app_state)
        if value not in (None, "")
    ]
    if states:
        lines.append("    App State:")
        lines.extend(states)

    if account.scam:
        lines.append(f"    ⚠️ Security Warning: {account.scam.message}")

    for reason in _account_failures(summary, position):
        lines.append(f"    ❌ Failure: {reason}")

    return "\n".join(lines)


def render_concise(summary: TransactionSummary) -> str:
    """One line per field; empty lines are dropped, never printed blank."""
    names = ", ".join(account.display_name for account in summary.accounts) or "None"
    warnings = security_warnings(summary)

    lines = [
        f"Hash: {summary.hash}",
        f"Time: {summary.time}",
        f"Status: {summary.status}",
        f"Fee Payer: {summary.payer}",
        f"Fee: {format_fee(summary.fee, summary.fee_usd)}",
        f"Updated Accounts ({summary.account_count}): {names}",
        f"Security: {', '.join(warnings)}" if warnings else "",
    ]
    return "\n".join(line for line in lines if line)


def render_verbose(summary: TransactionSummary) -> str:
    """Header fields followed by security, failure and account sections."""
    header = [
        f"Transaction Hash: {summary.hash}",
        f"Block Height: {summary.block_height if summary.block_height is not None else 'Unknown'}",
        f"Status: {summary.status}",
        f"Time: {summary.time}",
        f"Fee: {format_fee(summary.fee, summary.fee_usd)}",
        f"Fee Payer: {summary.payer}",
        f"Nonce: {summary.nonce if summary.nonce is not None else 'Unknown'}",
        f"Memo: {summary.memo}",
    ]
    sections = ["\n".join(header)]

    warnings = security_warnings(summary)
    if warnings:
        sections.append("Security Warnings:\n" + "\n".join(warnings))

    failures = failure_lines(summary)
    if failures:
        sections.append("Failures:\n" + "\n".join(failures))

    if summary.accounts:
        blocks = [
            format_account(summary, account, position)
            for position, account in enumerate(summary.accounts)
        ]
        sections.append(f"Updated Accounts ({summary.account_count}):\n" + "\n\n".join(blocks))
    else:
        sections.append(f"Updated Accounts ({summary.account_count}): None")

    return "\n\n".join(sections)


def format_transaction(record: Optional[Dict[str, Any]], verbose: bool = True) -> str:
    """
    Render a raw upstream transaction record as display text.

    Args:
        record: Transaction JSON as returned by the explorer
        verbose: Full report when True, one-block summary when False

    Returns:
        Display text; formatting failures are returned inline, never raised
    """
    if not record:
        return "No transaction data available"

    try:
        summary = parse_transaction(record).normalize()
        return render_verbose(summary) if verbose else render_concise(summary)
    except Exception as e:
        return f"Error formatting transaction data: {e}"
