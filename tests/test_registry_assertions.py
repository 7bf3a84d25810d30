"""
Tests for registry asserters — Key, typed value variants and KeyPair.

All registry access goes through the in-memory backend; every test that
evaluates also checks that no key handle is left open.
"""

import sys

import pytest
from pydantic import ValidationError

from check_reboot.core.assertions import (
    DataDisplayer,
    Key,
    KeyBinary,
    KeyInt,
    KeyPair,
    KeyString,
    KeyStrings,
    SubPathReporter,
)
from check_reboot.core.errors import (
    EvaluationError,
    InvalidNumberOfKeysInPairError,
    InvalidRootKeyError,
    MissingOptionalItemError,
    MissingRequiredItemError,
    MissingValueError,
    UnknownRebootEvidenceError,
    UnknownRebootEvidenceIndicatorError,
    UnsupportedPlatformError,
)
from check_reboot.core.models import (
    KeyPairRebootEvidence,
    KeyRebootEvidence,
    KeyRequirements,
    KeyStringsRebootEvidence,
    RootKey,
    ValueType,
)

HKLM = RootKey.LOCAL_MACHINE
KEY = r"SOFTWARE\Vendor\Product"
HKLM_KEY = rf"HKEY_LOCAL_MACHINE\{KEY}"
ACTIVE = r"SYSTEM\CurrentControlSet\Control\ComputerName\ActiveComputerName"
PENDING = r"SYSTEM\CurrentControlSet\Control\ComputerName\ComputerName"
PAIR_MEMBER = KeyRequirements(key_required=True, value_required=True)


def key(registry, value="", requirements=None, **evidence):
    return Key(
        HKLM,
        KEY,
        value=value,
        evidence=KeyRebootEvidence(**evidence),
        requirements=requirements,
        backend=registry,
    )


# ── Key: validation ──────────────────────────────────────────────────


class TestKeyValidate:
    def test_valid(self, registry):
        key(registry, key_exists=True).validate()

    def test_invalid_root(self, registry):
        k = Key("HKEY_BOGUS", KEY, evidence=KeyRebootEvidence(key_exists=True), backend=registry)
        with pytest.raises(InvalidRootKeyError):
            k.validate()
        assert str(k) == rf"UNKNOWN\{KEY}"

    def test_empty_path(self, registry):
        k = Key(HKLM, "", evidence=KeyRebootEvidence(key_exists=True), backend=registry)
        with pytest.raises(MissingValueError):
            k.validate()

    def test_value_evidence_without_value_name(self, registry):
        with pytest.raises(MissingValueError):
            key(registry, value_exists=True).validate()

    def test_no_evidence(self, registry):
        with pytest.raises(UnknownRebootEvidenceError):
            key(registry, value="Flag").validate()

    def test_pair_member_shape_needs_no_evidence(self, registry):
        key(registry, value="Flag", requirements=PAIR_MEMBER).validate()

    def test_only_one_requirement_is_not_pair_member(self, registry):
        with pytest.raises(UnknownRebootEvidenceError):
            key(registry, value="Flag", requirements=KeyRequirements(key_required=True)).validate()


# ── Key: evaluation ──────────────────────────────────────────────────


class TestKeyEvaluate:
    def test_key_exists(self, registry):
        registry.add_key(HKLM, KEY)
        k = key(registry, key_exists=True)
        k.evaluate()

        assert k.err is None
        assert k.has_evidence()
        assert k.reboot_required()
        assert k.is_warning_state()
        assert k.reboot_reasons() == [f"Key {HKLM_KEY} found"]
        assert [mp.full for mp in k.matched_paths()] == [HKLM_KEY]
        assert registry.opened == 1
        assert registry.open_handles == 0

    def test_missing_optional_key(self, registry):
        k = key(registry, key_exists=True)
        k.evaluate()

        assert isinstance(k.err, MissingOptionalItemError)
        assert not k.has_evidence()
        assert not k.ignored()
        assert not k.is_critical_state()
        assert k.is_ok_state()

    def test_missing_required_key(self, registry):
        k = key(registry, key_exists=True, requirements=KeyRequirements(key_required=True))
        k.evaluate()

        assert isinstance(k.err, MissingRequiredItemError)
        assert k.is_critical_state()
        assert not k.is_ok_state()

    def test_value_exists(self, registry):
        registry.set_value(HKLM, KEY, "Flag", 1)
        k = key(registry, value="Flag", value_exists=True)
        k.evaluate()

        assert k.has_evidence()
        assert k.value_type == "DWORD"
        assert k.reboot_reasons() == [f"Value Flag of type DWORD for key {HKLM_KEY} found"]
        assert registry.open_handles == 0

    def test_optional_value_missing_stops(self, registry):
        registry.add_key(HKLM, rf"{KEY}\Child")
        k = key(registry, value="Flag", value_exists=True, sub_keys_exist=True)
        k.evaluate()

        assert k.err is None
        assert not k.has_evidence()
        assert registry.open_handles == 0

    def test_required_value_missing(self, registry):
        registry.add_key(HKLM, KEY)
        k = key(
            registry,
            value="Flag",
            value_exists=True,
            requirements=KeyRequirements(value_required=True),
        )
        k.evaluate()

        assert isinstance(k.err, MissingValueError)
        assert k.is_critical_state()
        assert registry.open_handles == 0

    def test_subkeys_exist(self, registry):
        registry.add_key(HKLM, rf"{KEY}\b-guid")
        registry.add_key(HKLM, rf"{KEY}\a-guid")
        k = key(registry, sub_keys_exist=True)
        k.evaluate()

        assert k.has_evidence()
        assert k.has_sub_path_matches()
        assert [mp.relative for mp in k.matched_paths()] == [rf"{KEY}\a-guid", rf"{KEY}\b-guid"]
        assert [mp.base for mp in k.matched_paths()] == ["a-guid", "b-guid"]
        assert k.reboot_reasons() == [f"Subkeys for key {HKLM_KEY} found"]
        assert registry.open_handles == 0

    def test_no_subkeys(self, registry):
        registry.add_key(HKLM, KEY)
        k = key(registry, sub_keys_exist=True)
        k.evaluate()

        assert k.err is None
        assert not k.has_evidence()
        assert k.matched_paths() == []

    def test_evidence_short_circuits(self, registry):
        registry.add_key(HKLM, rf"{KEY}\Child")
        k = key(registry, key_exists=True, sub_keys_exist=True)
        k.evaluate()

        assert k.discovered_evidence.key_exists
        assert not k.discovered_evidence.sub_keys_exist
        assert len(k.matched_paths()) == 1

    def test_open_error_wrapped(self, registry):
        denied = PermissionError("access denied")
        registry.fail_on(HKLM, KEY, denied)
        k = key(registry, key_exists=True)
        k.evaluate()

        assert isinstance(k.err, EvaluationError)
        assert k.err.__cause__ is denied
        assert "opening optional key" in str(k.err)
        assert k.is_critical_state()
        assert registry.open_handles == 0

    def test_subkey_error_releases_handle(self, registry):
        registry.add_key(HKLM, KEY)
        registry.fail_on(HKLM, KEY, OSError("boom"), operation="subkeys")
        k = key(registry, sub_keys_exist=True)
        k.evaluate()

        assert isinstance(k.err, EvaluationError)
        assert registry.opened == 1
        assert registry.open_handles == 0

    def test_value_error_releases_handle(self, registry):
        registry.set_value(HKLM, KEY, "Flag", 1)
        registry.fail_on(HKLM, KEY, OSError("boom"), operation="value")
        k = key(registry, value="Flag", value_exists=True)
        k.evaluate()

        assert isinstance(k.err, EvaluationError)
        assert registry.open_handles == 0

    @pytest.mark.skipif(sys.platform == "win32", reason="live registry available")
    def test_live_registry_unsupported(self):
        k = Key(HKLM, KEY, evidence=KeyRebootEvidence(key_exists=True))
        k.evaluate()

        assert isinstance(k.err, UnsupportedPlatformError)
        assert k.is_critical_state()

    def test_capabilities(self, registry):
        k = key(registry, key_exists=True)
        assert isinstance(k, SubPathReporter)
        assert not isinstance(k, DataDisplayer)


# ── Key: filtering ───────────────────────────────────────────────────


class TestKeyFilter:
    def _evaluated(self, registry):
        registry.add_key(HKLM, rf"{KEY}\keep")
        registry.add_key(HKLM, rf"{KEY}\117cab2d")
        k = key(registry, sub_keys_exist=True)
        k.evaluate()
        return k

    def test_partial_ignore(self, registry):
        k = self._evaluated(registry)
        k.filter([rf"{KEY}\117CAB2D"])

        assert k.has_ignored()
        assert not k.ignored()
        assert k.reboot_required()

    def test_full_ignore(self, registry):
        k = self._evaluated(registry)
        k.filter(["software/vendor/product"])

        assert k.ignored()
        assert k.has_evidence()
        assert not k.reboot_required()
        assert k.is_ok_state()

    def test_filter_idempotent(self, registry):
        k = self._evaluated(registry)
        k.filter([r"product\keep"])
        once = [mp.ignored for mp in k.matched_paths()]
        k.filter([r"product\keep"])
        assert [mp.ignored for mp in k.matched_paths()] == once

    def test_no_matches_never_ignored(self, registry):
        k = key(registry, key_exists=True)
        k.evaluate()
        k.filter([KEY])

        assert not k.ignored()
        assert not k.has_ignored()

    def test_ignored_error_is_ok(self, registry):
        registry.add_key(HKLM, KEY)
        k = key(registry, key_exists=True)
        k.evaluate()
        k._err = MissingRequiredItemError("simulated")
        k.filter([KEY])

        assert k.ignored()
        assert not k.is_critical_state()
        assert k.is_ok_state()


# ── Typed value variants ─────────────────────────────────────────────


class TestKeyInt:
    def _key(self, registry, **kwargs):
        return KeyInt(
            HKLM,
            KEY,
            value="UpdateExeVolatile",
            evidence=KeyRebootEvidence(data_other_than_x=True),
            expected_data=0,
            backend=registry,
            **kwargs,
        )

    def test_data_other_than_expected(self, registry):
        registry.set_value(HKLM, KEY, "UpdateExeVolatile", 1)
        k = self._key(registry)
        k.evaluate()

        assert k.has_evidence()
        assert k.data == 1
        assert k.data_display() == "1"
        assert k.reboot_reasons() == [
            f"Data for value UpdateExeVolatile of type DWORD for key {HKLM_KEY} found"
        ]
        assert registry.open_handles == 0

    def test_expected_data(self, registry):
        registry.set_value(HKLM, KEY, "UpdateExeVolatile", 0)
        k = self._key(registry)
        k.evaluate()

        assert not k.has_evidence()
        assert k.data == 0

    def test_optional_value_missing(self, registry):
        registry.add_key(HKLM, KEY)
        k = self._key(registry)
        k.evaluate()

        assert k.err is None
        assert not k.has_evidence()
        assert k.data is None

    def test_wrong_type_is_error(self, registry):
        registry.set_value(HKLM, KEY, "UpdateExeVolatile", "text")
        k = self._key(registry)
        k.evaluate()

        assert isinstance(k.err, EvaluationError)
        assert k.is_critical_state()
        assert registry.open_handles == 0

    def test_is_data_displayer(self, registry):
        assert isinstance(self._key(registry), DataDisplayer)


class TestKeyBinary:
    def _key(self, registry):
        return KeyBinary(
            HKLM,
            KEY,
            value="Blob",
            evidence=KeyRebootEvidence(data_other_than_x=True),
            expected_data=b"\x01\x02",
            backend=registry,
        )

    def test_equal_bytes(self, registry):
        registry.set_value(HKLM, KEY, "Blob", b"\x01\x02")
        k = self._key(registry)
        k.evaluate()
        assert not k.has_evidence()

    def test_different_bytes(self, registry):
        registry.set_value(HKLM, KEY, "Blob", b"\x01\x03")
        k = self._key(registry)
        k.evaluate()

        assert k.has_evidence()
        assert k.data_display() == "[1 3]"
        assert "of type BINARY" in k.reboot_reasons()[0]


class TestKeyString:
    def _key(self, registry):
        return KeyString(
            HKLM,
            KEY,
            value="Name",
            evidence=KeyRebootEvidence(data_other_than_x=True),
            expected_data="expected",
            backend=registry,
        )

    def test_equal(self, registry):
        registry.set_value(HKLM, KEY, "Name", "expected")
        k = self._key(registry)
        k.evaluate()
        assert not k.has_evidence()
        assert k.data_display() == "expected"

    def test_different(self, registry):
        registry.set_value(HKLM, KEY, "Name", "other", ValueType.EXPAND_SZ)
        k = self._key(registry)
        k.evaluate()

        assert k.has_evidence()
        assert k.reboot_reasons() == [
            f"Data for value Name of type EXPAND_SZ for key {HKLM_KEY} found"
        ]


class TestKeyStrings:
    def _key(self, registry, terms, **evidence):
        return KeyStrings(
            HKLM,
            KEY,
            value="Entries",
            expected_data=terms,
            additional_evidence=KeyStringsRebootEvidence(**evidence),
            backend=registry,
        )

    def test_value_found_substring(self, registry):
        registry.set_value(HKLM, KEY, "Entries", ["xb y"])
        k = self._key(registry, ["a", "b"], value_found=True)
        k.validate()
        k.evaluate()

        assert k.has_evidence()
        assert k.search_term_matched == "b"
        reasons = k.reboot_reasons()
        assert len(reasons) == 1
        assert reasons[0] == f"Found match b in data for value Entries of key {HKLM_KEY}"
        assert registry.open_handles == 0

    def test_value_found_case_insensitive(self, registry):
        registry.set_value(HKLM, KEY, "Entries", [r"C:\Temp\FILE.DLL"])
        k = self._key(registry, ["file.dll"], value_found=True)
        k.evaluate()
        assert k.has_evidence()

    def test_value_found_no_match(self, registry):
        registry.set_value(HKLM, KEY, "Entries", ["x", "y"])
        k = self._key(registry, ["a", "b"], value_found=True)
        k.evaluate()

        assert not k.has_evidence()
        assert k.reboot_reasons() == []

    def test_all_values_found_partial(self, registry):
        registry.set_value(HKLM, KEY, "Entries", ["a"])
        k = self._key(registry, ["a", "b"], all_values_found=True)
        k.evaluate()
        assert not k.has_evidence()

    def test_all_values_found(self, registry):
        registry.set_value(HKLM, KEY, "Entries", ["a", "xb"])
        k = self._key(registry, ["a", "b"], all_values_found=True)
        k.evaluate()

        assert k.has_evidence()
        assert k.reboot_reasons() == [
            f"All specified strings found in data for value Entries of key {HKLM_KEY}"
        ]

    def test_both_modes_rejected(self, registry):
        k = self._key(registry, ["a"], value_found=True, all_values_found=True)
        with pytest.raises(UnknownRebootEvidenceIndicatorError):
            k.validate()

    def test_terms_without_mode_rejected(self, registry):
        k = self._key(registry, ["a"])
        with pytest.raises(UnknownRebootEvidenceIndicatorError):
            k.validate()

    def test_mode_without_terms_rejected(self, registry):
        k = self._key(registry, [], value_found=True)
        with pytest.raises(MissingValueError):
            k.validate()

    def test_value_exists_keeps_data_for_display(self, registry):
        registry.set_value(
            HKLM,
            KEY,
            "PendingFileRenameOperations",
            ["\\??\\C:\\temp\\a.dll", "", "\\??\\C:\\temp\\b.dll", "*1", "x"],
        )
        k = KeyStrings(
            HKLM,
            KEY,
            value="PendingFileRenameOperations",
            evidence=KeyRebootEvidence(value_exists=True),
            backend=registry,
        )
        k.validate()
        k.evaluate()

        assert k.has_evidence()
        assert k.reboot_reasons() == [
            f"Value PendingFileRenameOperations of type MULTI_SZ for key {HKLM_KEY} found"
        ]
        assert k.cleaned_data() == [r"C:\temp\a.dll", r"C:\temp\b.dll", "*1", "x"]
        assert k.data_display() == r"Entries [5 total, 3 skipped]: C:\temp\a.dll, C:\temp\b.dll"
        assert registry.opened == 1
        assert registry.open_handles == 0


# ── KeyPair ──────────────────────────────────────────────────────────


def pair(registry, mismatch=True):
    return KeyPair(
        [
            Key(HKLM, ACTIVE, value="ComputerName", requirements=PAIR_MEMBER, backend=registry),
            Key(HKLM, PENDING, value="ComputerName", requirements=PAIR_MEMBER, backend=registry),
        ],
        additional_evidence=KeyPairRebootEvidence(paired_values_do_not_match=mismatch),
    )


class TestKeyPair:
    def test_validate_count(self, registry):
        p = KeyPair([Key(HKLM, ACTIVE, value="ComputerName", requirements=PAIR_MEMBER)])
        with pytest.raises(InvalidNumberOfKeysInPairError):
            p.validate()

    def test_validate_members(self, registry):
        p = KeyPair([
            Key("HKEY_BOGUS", ACTIVE, value="ComputerName", requirements=PAIR_MEMBER),
            Key(HKLM, PENDING, value="ComputerName", requirements=PAIR_MEMBER),
        ])
        with pytest.raises(InvalidRootKeyError):
            p.validate()

    def test_matching_values(self, registry):
        registry.set_value(HKLM, ACTIVE, "ComputerName", "HOST01")
        registry.set_value(HKLM, PENDING, "ComputerName", "HOST01")
        p = pair(registry)
        p.validate()
        p.evaluate()

        assert p.err is None
        assert not p.has_evidence()
        assert p.is_ok_state()
        assert registry.opened == 2
        assert registry.open_handles == 0

    def test_mismatched_values(self, registry):
        registry.set_value(HKLM, ACTIVE, "ComputerName", "HOST01")
        registry.set_value(HKLM, PENDING, "ComputerName", "HOST02")
        p = pair(registry)
        p.evaluate()

        assert p.has_evidence()
        assert p.reboot_required()
        assert p.reboot_reasons() == [
            rf"Data mismatch for {ACTIVE}\ComputerName and {PENDING}\ComputerName"
        ]
        assert sorted(mp.relative for mp in p.matched_paths()) == sorted([ACTIVE, PENDING])
        assert p.data_display() == "HOST01, HOST02"
        assert registry.open_handles == 0

    def test_same_text_different_type_is_mismatch(self, registry):
        registry.set_value(HKLM, ACTIVE, "ComputerName", "HOST01", ValueType.SZ)
        registry.set_value(HKLM, PENDING, "ComputerName", ["HOST01"], ValueType.MULTI_SZ)
        p = pair(registry)
        p.evaluate()
        assert p.has_evidence()

    def test_missing_first_member_short_circuits(self, registry):
        registry.set_value(HKLM, PENDING, "ComputerName", "HOST01")
        p = pair(registry)
        p.evaluate()

        assert isinstance(p.err, MissingRequiredItemError)
        assert p.is_critical_state()
        assert registry.opened == 0
        assert registry.open_handles == 0

    def test_missing_member_value(self, registry):
        registry.add_key(HKLM, ACTIVE)
        registry.set_value(HKLM, PENDING, "ComputerName", "HOST01")
        p = pair(registry)
        p.evaluate()

        assert isinstance(p.err, MissingValueError)
        assert registry.opened == 1
        assert registry.open_handles == 0

    def test_second_member_error_releases_both(self, registry):
        registry.set_value(HKLM, ACTIVE, "ComputerName", "HOST01")
        registry.set_value(HKLM, PENDING, "ComputerName", "HOST01")
        registry.fail_on(HKLM, PENDING, OSError("boom"), operation="value")
        p = pair(registry)
        p.evaluate()

        assert isinstance(p.err, EvaluationError)
        assert registry.opened == 2
        assert registry.open_handles == 0

    def test_without_mismatch_evidence_stops(self, registry):
        registry.set_value(HKLM, ACTIVE, "ComputerName", "HOST01")
        registry.set_value(HKLM, PENDING, "ComputerName", "HOST02")
        p = pair(registry, mismatch=False)
        p.evaluate()

        assert not p.has_evidence()
        assert registry.opened == 1
        assert registry.open_handles == 0

    def test_ignored_only_when_both_members_ignored(self, registry):
        registry.set_value(HKLM, ACTIVE, "ComputerName", "HOST01")
        registry.set_value(HKLM, PENDING, "ComputerName", "HOST02")
        p = pair(registry)
        p.evaluate()

        p.filter(["ActiveComputerName"])
        assert p.has_ignored()
        assert not p.ignored()
        assert p.reboot_required()

        p.filter([r"Control\ComputerName"])
        assert p.ignored()
        assert not p.reboot_required()
        assert p.is_ok_state()


# ── Static configuration ─────────────────────────────────────────────

class TestStaticConfiguration:
    def test_evidence_models_are_frozen(self):
        evidence = KeyRebootEvidence(key_exists=True)
        with pytest.raises(ValidationError):
            evidence.value_exists = True
        with pytest.raises(ValidationError):
            KeyStringsRebootEvidence().value_found = True
        with pytest.raises(ValidationError):
            KeyPairRebootEvidence().paired_values_do_not_match = True

    def test_evaluation_does_not_touch_expected_evidence(self, registry):
        registry.add_key(HKLM, KEY)
        expected = KeyRebootEvidence(key_exists=True)
        k = Key(HKLM, KEY, evidence=expected, backend=registry)
        k.evaluate()

        assert k.has_evidence()
        assert k.discovered_evidence.key_exists
        assert expected == KeyRebootEvidence(key_exists=True)
        assert k.expected_evidence == expected

    def test_expected_data_is_read_only(self, registry):
        k = KeyInt(HKLM, KEY, value="Flag", evidence=KeyRebootEvidence(data_other_than_x=True), expected_data=1)
        with pytest.raises(AttributeError):
            k.expected_data = 2
        assert k.expected_data == 1

    def test_search_terms_cannot_be_changed_through_property(self, registry):
        terms = ["a", "b"]
        k = KeyStrings(
            HKLM,
            KEY,
            value="Pending",
            expected_data=terms,
            additional_evidence=KeyStringsRebootEvidence(value_found=True),
            backend=registry,
        )
        terms.append("c")
        k.expected_data.append("d")

        assert k.expected_data == ["a", "b"]

    def test_pair_members_cannot_be_changed_through_property(self, registry):
        p = pair(registry)
        p.keys.pop()

        assert len(p.keys) == 2
        p.validate()
