"""Default rule set — structured PCI/PII found in application logs.

Declaration order matters only between rules of equal severity: the engine
applies Critical rules first, then High, Medium and Low.
"""

from __future__ import annotations

from .types import Method, RuleDefinition, Severity

DEFAULT_RULES: tuple[RuleDefinition, ...] = (
    # Card numbers — 16 digits, optional dash/space groups
    RuleDefinition(
        name="credit_card",
        pattern=r"\b(?:\d{4}[-\s]?){3}\d{4}\b",
        method=Method.PHANTOM,
        preserve_chars=4,
        severity=Severity.CRITICAL,
    ),

    # SSN (US)
    RuleDefinition(
        name="ssn",
        pattern=r"\b\d{3}-\d{2}-\d{4}\b",
        method=Method.MIRROR,
        severity=Severity.HIGH,
    ),

    RuleDefinition(
        name="email",
        pattern=r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b",
        method=Method.PHANTOM,
        preserve_chars=3,
        severity=Severity.HIGH,
    ),

    # Phone — NANP with optional +1 and separators
    RuleDefinition(
        name="phone",
        pattern=(
            r"\b(?:\+1[-.\s]?)?"
            r"(?:\([0-9]{3}\)|[0-9]{3})[-.\s]?"
            r"[0-9]{3}[-.\s]?[0-9]{4}\b"
        ),
        method=Method.PHANTOM,
        preserve_chars=4,
        severity=Severity.MEDIUM,
    ),

    # IPv4
    RuleDefinition(
        name="ip_address",
        pattern=r"\b(?:[0-9]{1,3}\.){3}[0-9]{1,3}\b",
        method=Method.MASK,
        replacement="XXX.XXX.XXX.XXX",
        severity=Severity.MEDIUM,
    ),

    # api_key=..., API-KEY: ... (20+ chars of key material)
    RuleDefinition(
        name="api_key",
        pattern=r"\b[Aa][Pp][Ii][_-]?[Kk][Ee][Yy][:\s=]+[\w\-]{20,}\b",
        method=Method.MASK,
        replacement="[API_KEY_PHANTOMED]",
        severity=Severity.CRITICAL,
    ),

    RuleDefinition(
        name="aws_access_key",
        pattern=r"\bAKIA[0-9A-Z]{16}\b",
        method=Method.MASK,
        replacement="[AWS_KEY_PHANTOMED]",
        severity=Severity.CRITICAL,
    ),

    # password=..., password: ... up to the next whitespace
    RuleDefinition(
        name="password",
        pattern=r"\b[Pp][Aa][Ss][Ss][Ww][Oo][Rr][Dd][:\s=]+\S+",
        method=Method.MASK,
        replacement="[PASSWORD_PHANTOMED]",
        severity=Severity.CRITICAL,
    ),
)
