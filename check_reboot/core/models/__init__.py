"""
Domain models — evidence, matched paths, severity and run options.

All models are re-exported here for convenient access:

    from check_reboot.core.models import KeyRebootEvidence, MatchedPath, ServiceState
"""

from check_reboot.core.models.config import CheckConfig
from check_reboot.core.models.evidence import (
    FileRebootEvidence,
    KeyPairRebootEvidence,
    KeyRebootEvidence,
    KeyRequirements,
    KeyStringsRebootEvidence,
)
from check_reboot.core.models.matched_path import MatchedPath
from check_reboot.core.models.registry import RegistryValue, RootKey, ValueType
from check_reboot.core.models.state import ServiceState

__all__ = [
    # config.py
    "CheckConfig",
    # evidence.py
    "FileRebootEvidence",
    "KeyPairRebootEvidence",
    "KeyRebootEvidence",
    "KeyRequirements",
    "KeyStringsRebootEvidence",
    # matched_path.py
    "MatchedPath",
    # registry.py
    "RegistryValue",
    "RootKey",
    "ValueType",
    # state.py
    "ServiceState",
]
