"""
Default registry assertions — the keys and values that signal a pending reboot.

The table is static. Each entry names a location maintained by Windows
Update, Component Based Servicing, the Server Manager, domain join or a
computer rename, and the evidence that indicates a reboot.
"""

from __future__ import annotations

import logging
import sys

from check_reboot.adapters.base import RegistryBackend
from check_reboot.core.assertions.base import Asserter
from check_reboot.core.assertions.registry import Key, KeyInt, KeyPair, KeyStrings
from check_reboot.core.models.evidence import (
    KeyPairRebootEvidence,
    KeyRebootEvidence,
    KeyRequirements,
)
from check_reboot.core.models.registry import RootKey

logger = logging.getLogger(__name__)

HKLM = RootKey.LOCAL_MACHINE

# ── Key paths ───────────────────────────────────────────────────

UPDATES = r"SOFTWARE\Microsoft\Updates"
SESSION_MANAGER = r"SYSTEM\CurrentControlSet\Control\Session Manager"
WINDOWS_UPDATE = r"SOFTWARE\Microsoft\Windows\CurrentVersion\WindowsUpdate"
RUN_ONCE = r"SOFTWARE\Microsoft\Windows\CurrentVersion\RunOnce"
COMPONENT_BASED_SERVICING = r"SOFTWARE\Microsoft\Windows\CurrentVersion\Component Based Servicing"
SERVER_MANAGER = r"SOFTWARE\Microsoft\ServerManager"
NETLOGON = r"SYSTEM\CurrentControlSet\Services\Netlogon"
ACTIVE_COMPUTER_NAME = r"SYSTEM\CurrentControlSet\Control\ComputerName\ActiveComputerName"
COMPUTER_NAME = r"SYSTEM\CurrentControlSet\Control\ComputerName\ComputerName"

# Subkey of WindowsUpdate\Services\Pending seen to linger on otherwise
# fully patched systems.
PENDING_SERVICES_GUID = "117cab2d-82b1-4b5a-a08c-4d62dbee7782"


def default_registry_ignored_paths() -> list[str]:
    """Registry paths ignored unless defaults are disabled."""
    return [rf"{WINDOWS_UPDATE}\Services\Pending\{PENDING_SERVICES_GUID}"]


def default_registry_assertions(
    backend: RegistryBackend | None = None,
    include_unsupported: bool = False,
) -> list[Asserter]:
    """The registry asserters evaluated by a check.

    Args:
        backend: Registry backend to evaluate against. When omitted the
            live registry is used, which only exists on Windows; the list
            is empty elsewhere.
        include_unsupported: Return the table even where it cannot be
            evaluated (for listing it).
    """
    if backend is None and sys.platform != "win32" and not include_unsupported:
        logger.warning("Registry assertions are only supported on Windows; none loaded")
        return []

    def key(path: str, value: str = "", **evidence: bool) -> Key:
        return Key(HKLM, path, value=value, evidence=KeyRebootEvidence(**evidence), backend=backend)

    pair_member = KeyRequirements(key_required=True, value_required=True)

    return [
        KeyInt(
            HKLM,
            UPDATES,
            value="UpdateExeVolatile",
            evidence=KeyRebootEvidence(data_other_than_x=True),
            expected_data=0,
            backend=backend,
        ),
        KeyStrings(
            HKLM,
            SESSION_MANAGER,
            value="PendingFileRenameOperations",
            evidence=KeyRebootEvidence(value_exists=True),
            backend=backend,
        ),
        KeyStrings(
            HKLM,
            SESSION_MANAGER,
            value="PendingFileRenameOperations2",
            evidence=KeyRebootEvidence(value_exists=True),
            backend=backend,
        ),
        key(rf"{WINDOWS_UPDATE}\Auto Update\RebootRequired", key_exists=True),
        key(rf"{WINDOWS_UPDATE}\Services\Pending", sub_keys_exist=True),
        key(rf"{WINDOWS_UPDATE}\Auto Update\PostRebootReporting", key_exists=True),
        Key(
            HKLM,
            RUN_ONCE,
            value="DVDRebootSignal",
            evidence=KeyRebootEvidence(value_exists=True),
            requirements=KeyRequirements(key_required=True),
            backend=backend,
        ),
        key(rf"{COMPONENT_BASED_SERVICING}\RebootPending", key_exists=True),
        key(rf"{COMPONENT_BASED_SERVICING}\RebootInProgress", key_exists=True),
        key(rf"{COMPONENT_BASED_SERVICING}\PackagesPending", key_exists=True),
        key(rf"{SERVER_MANAGER}\CurrentRebootAttempts", key_exists=True),
        key(NETLOGON, value="JoinDomain", value_exists=True),
        key(NETLOGON, value="AvoidSpnSet", value_exists=True),
        KeyPair(
            [
                Key(HKLM, ACTIVE_COMPUTER_NAME, value="ComputerName",
                    requirements=pair_member, backend=backend),
                Key(HKLM, COMPUTER_NAME, value="ComputerName",
                    requirements=pair_member, backend=backend),
            ],
            additional_evidence=KeyPairRebootEvidence(paired_values_do_not_match=True),
        ),
    ]
