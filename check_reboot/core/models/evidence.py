"""
Evidence models — what proves a reboot is pending.

The same models describe both sides of an assertion: the evidence an
asserter *expects* (static configuration) and the evidence it *found*
(runtime state populated by ``evaluate()``). All of them are frozen; found
evidence is replaced with an updated copy rather than modified in place.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class KeyRebootEvidence(BaseModel):
    """Registry key evidence that indicates a reboot is needed."""

    model_config = ConfigDict(frozen=True)

    key_exists: bool = False          # the key path itself exists
    value_exists: bool = False        # the named value exists
    sub_keys_exist: bool = False      # the key has one or more subkeys
    data_other_than_x: bool = False   # value data differs from the expected data

    def any(self) -> bool:
        """Whether any evidence flag is set."""
        return (
            self.key_exists
            or self.value_exists
            or self.sub_keys_exist
            or self.data_other_than_x
        )


class KeyStringsRebootEvidence(BaseModel):
    """Additional evidence for multi-string values.

    Checked only after the base key evidence failed to match.
    """

    model_config = ConfigDict(frozen=True)

    value_found: bool = False         # any single search term matched
    all_values_found: bool = False    # every search term matched

    def any(self) -> bool:
        return self.value_found or self.all_values_found


class KeyPairRebootEvidence(BaseModel):
    """Additional evidence for a pair of registry keys."""

    model_config = ConfigDict(frozen=True)

    paired_values_do_not_match: bool = False

    def any(self) -> bool:
        return self.paired_values_do_not_match


class FileRebootEvidence(BaseModel):
    """File evidence that indicates a reboot is needed."""

    model_config = ConfigDict(frozen=True)

    file_exists: bool = False

    def any(self) -> bool:
        return self.file_exists


class KeyRequirements(BaseModel):
    """How "not found" conditions are treated.

    A missing required key or value is an error; a missing optional one
    is a normal "no evidence" outcome.
    """

    model_config = ConfigDict(frozen=True)

    key_required: bool = False
    value_required: bool = False
