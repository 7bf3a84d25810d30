"""
Registry asserters — keys, typed key values and key pairs.

Evaluation of every variant shares one base sequence on a single open
handle, each step stopping further checks once it finds evidence or an
error:

    1. open the key          (missing → required/optional item error;
                              exists + key_exists → evidence)
    2. named value check     (missing → stop or error;
                              present + value_exists → evidence)
    3. subkey enumeration    (subkeys + sub_keys_exist → evidence per subkey)

Typed variants (KeyInt, KeyBinary, KeyString, KeyStrings) then retrieve
the value data through the same handle and apply their own comparison in
``_evaluate_data``. The handle is released when ``evaluate()`` returns,
on every path.
"""

from __future__ import annotations

import logging
import ntpath
from collections.abc import Iterable, Sequence
from contextlib import ExitStack

from check_reboot.adapters.base import (
    KeyNotFoundError,
    RegistryBackend,
    RegistryKeyHandle,
    ValueNotFoundError,
)
from check_reboot.core.assertions.base import Asserter
from check_reboot.core.errors import (
    EvaluationError,
    InvalidNumberOfKeysInPairError,
    InvalidRootKeyError,
    MissingOptionalItemError,
    MissingRequiredItemError,
    MissingValueError,
    RebootCheckError,
    UnknownRebootEvidenceError,
    UnknownRebootEvidenceIndicatorError,
    wrap_os_error,
)
from check_reboot.core.models.evidence import (
    KeyPairRebootEvidence,
    KeyRebootEvidence,
    KeyRequirements,
    KeyStringsRebootEvidence,
)
from check_reboot.core.models.matched_path import MatchedPath
from check_reboot.core.models.registry import ROOT_KEY_UNKNOWN, RegistryValue, RootKey
from check_reboot.core.textutils import contains_any

logger = logging.getLogger(__name__)

# Prefix found on entries of the PendingFileRenameOperations MULTI_SZ value.
PENDING_FILE_RENAME_OPERATIONS_PREFIX = "\\??\\"

# Number of MULTI_SZ entries shown by data_display().
MULTI_SZ_DATA_DISPLAY_LIMIT = 2

KEY_REQ_OPTIONAL_LABEL = "optional"
KEY_REQ_REQUIRED_LABEL = "required"


def _requirement_label(required: bool) -> str:
    return KEY_REQ_REQUIRED_LABEL if required else KEY_REQ_OPTIONAL_LABEL


class Key(Asserter):
    """A registry key that (if requirements are met) indicates a reboot.

    Args:
        root: Registry root key (e.g., ``RootKey.LOCAL_MACHINE``).
        path: Key path below the root.
        value: Optional value name to evaluate.
        evidence: Evidence that indicates a reboot is needed.
        requirements: Whether the key and/or value must exist.
        backend: Registry backend; the live registry when omitted.
    """

    def __init__(
        self,
        root: RootKey | str,
        path: str,
        value: str = "",
        evidence: KeyRebootEvidence | None = None,
        requirements: KeyRequirements | None = None,
        backend: RegistryBackend | None = None,
    ):
        super().__init__()
        self._root = root
        self._path = path
        self._value = value
        self._evidence_expected = evidence or KeyRebootEvidence()
        self._requirements = requirements or KeyRequirements()
        self.backend = backend

        self._evidence_found = KeyRebootEvidence()
        self._value_type = ""
        self._value_missing = False

    # ── Static configuration ────────────────────────────────────

    @property
    def root(self) -> RootKey | None:
        return RootKey.lookup(self._root)

    @property
    def root_name(self) -> str:
        root = self.root
        return root.value if root is not None else ROOT_KEY_UNKNOWN

    @property
    def path(self) -> str:
        return self._path

    @property
    def value(self) -> str:
        return self._value

    @property
    def requirements(self) -> KeyRequirements:
        return self._requirements

    @property
    def expected_evidence(self) -> KeyRebootEvidence:
        return self._evidence_expected.model_copy()

    @property
    def discovered_evidence(self) -> KeyRebootEvidence:
        return self._evidence_found.model_copy()

    @property
    def value_type(self) -> str:
        """Type label of the named value, once evaluated."""
        return self._value_type

    def __str__(self) -> str:
        return f"{self.root_name}\\{self._path}"

    # ── Validation ──────────────────────────────────────────────

    def _expects_evidence(self) -> bool:
        return self._evidence_expected.any()

    def validate(self) -> None:
        if self.root is None:
            raise InvalidRootKeyError(f"registry root key unknown: {self._root!r}")

        if not self._path:
            raise MissingValueError("required registry key path not specified")

        # A value name is only needed for value based evidence.
        if not self._value and (
            self._evidence_expected.value_exists or self._evidence_expected.data_other_than_x
        ):
            raise MissingValueError(f"required registry value not specified for key {self}")

        # Key pair members carry no evidence of their own; they are marked
        # with both key and value required instead.
        if not self._expects_evidence():
            if not (self._requirements.key_required and self._requirements.value_required):
                raise UnknownRebootEvidenceError(f"no reboot evidence specified for key {self}")

    # ── Evaluation ──────────────────────────────────────────────

    def evaluate(self) -> None:
        logger.debug("Evaluating key %s", self)
        handle = self._open()
        if handle is None:
            return

        with handle:
            self._evaluate_base(handle)
            if self._err is not None or self._value_missing:
                return
            self._evaluate_data(handle)

        logger.debug("Handle to %s closed", self)

    def _resolve_backend(self) -> RegistryBackend:
        if self.backend is None:
            from check_reboot.adapters import default_backend

            self.backend = default_backend()
        return self.backend

    def _open(self) -> RegistryKeyHandle | None:
        """Open the key, recording an error on failure."""
        self._value_missing = False
        label = _requirement_label(self._requirements.key_required)

        try:
            backend = self._resolve_backend()
            handle = backend.open_key(self.root, self._path)
        except KeyNotFoundError:
            if self._requirements.key_required:
                logger.debug("Key %s not found, but marked as required", self)
                self._err = MissingRequiredItemError(f"missing required key {self}")
            else:
                logger.debug("Key %s not found, but not marked as required", self)
                self._err = MissingOptionalItemError(f"missing optional key {self}")
            return None
        except RebootCheckError as e:
            self._err = e
            return None
        except OSError as e:
            logger.debug("Unexpected error opening %s key %s: %s", label, self, e)
            self._err = wrap_os_error(e, str(self), "opening", f"{label} key")
            return None

        logger.debug("Key %s opened", self)
        return handle

    def _evaluate_base(self, handle: RegistryKeyHandle) -> None:
        """Key, value and subkey checks shared by every registry asserter."""
        if self._evidence_expected.key_exists:
            logger.debug("Reboot evidence found: key %s exists", self)
            self._evidence_found = self._evidence_found.model_copy(update={"key_exists": True})
            self._add_matched_path(self._path)
            return

        if self._value:
            found = self._lookup_value(handle)
            if found is None:
                return

            self._value_type = found.type_label
            logger.debug("Value %s of type %s for key %s found", self._value, self._value_type, self)
            if self._evidence_expected.value_exists:
                logger.debug("Reboot evidence found: value %s exists", self._value)
                self._evidence_found = self._evidence_found.model_copy(update={"value_exists": True})
                self._add_matched_path(self._path)
                return

        if self._evidence_expected.sub_keys_exist:
            try:
                names = handle.subkey_names()
            except OSError as e:
                self._err = wrap_os_error(e, str(self), "retrieving subkey names for", "key")
                return

            logger.debug("%d subkeys found for key %s", len(names), self)
            if names:
                self._evidence_found = self._evidence_found.model_copy(update={"sub_keys_exist": True})
                for name in names:
                    self._add_matched_path(ntpath.join(self._path, name))
                return

    def _lookup_value(self, handle: RegistryKeyHandle) -> RegistryValue | None:
        """Retrieve the named value, recording what its absence means.

        Returns None when the value is missing or could not be read.
        """
        required = self._requirements.value_required
        try:
            return handle.get_value(self._value)
        except ValueNotFoundError:
            self._value_missing = True
            if required:
                logger.debug("Value %s not found, but marked as required", self._value)
                self._err = MissingValueError(
                    f"value {self._value} not found, but marked as required"
                )
            else:
                logger.debug("Value %s not found, but not marked as required", self._value)
            return None
        except OSError as e:
            label = _requirement_label(required)
            self._err = wrap_os_error(e, self._value, "retrieving", f"{label} value")
            return None

    def _evaluate_data(self, handle: RegistryKeyHandle) -> None:
        """Typed comparison hook; the plain Key has nothing further to check."""

    def _add_matched_path(self, path: str) -> None:
        self._matched.add(
            path,
            lambda p: MatchedPath(root=self.root_name, relative=p, base=ntpath.basename(p)),
        )

    # ── Queries ─────────────────────────────────────────────────

    def has_evidence(self) -> bool:
        return self._evidence_found.any()

    def has_sub_path_matches(self) -> bool:
        """Whether evidence was found through subkey matches."""
        return self._evidence_found.sub_keys_exist

    def reboot_reasons(self) -> list[str]:
        reasons = []
        found = self._evidence_found

        if found.data_other_than_x:
            reasons.append(
                f"Data for value {self._value} of type {self._value_type or 'UNKNOWN'} "
                f"for key {self} found"
            )
        if found.key_exists:
            reasons.append(f"Key {self} found")
        if found.sub_keys_exist:
            reasons.append(f"Subkeys for key {self} found")
        if found.value_exists:
            if self._value_type:
                reasons.append(f"Value {self._value} of type {self._value_type} for key {self} found")
            else:
                reasons.append(f"Value {self._value} for key {self} found")

        return reasons


class _TypedKey(Key):
    """A Key whose value data is retrieved and retained for display.

    Comparisons only run when the base checks found no evidence; when they
    did, the data is still kept so verbose output can show it.
    """

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._retrieved: RegistryValue | None = None

    def _evaluate_data(self, handle: RegistryKeyHandle) -> None:
        if not self._value:
            return

        base_evidence = self.has_evidence()
        found = self._retrieve(handle, quiet=base_evidence)
        if found is None:
            return

        try:
            self._store(found)
        except TypeError as e:
            if not base_evidence:
                self._err = EvaluationError(
                    f"unexpected data for value {self._value} of key {self}: {e}",
                    location=str(self),
                    operation="converting",
                )
            return

        if base_evidence:
            return

        logger.debug("Data for value %s retrieved: %s", self._value, found.display())
        self._compare()

    def _retrieve(self, handle: RegistryKeyHandle, quiet: bool) -> RegistryValue | None:
        try:
            found = handle.get_value(self._value)
        except ValueNotFoundError:
            if quiet or not self._requirements.value_required:
                logger.debug("Value %s not found, but not marked as required", self._value)
                return None
            self._err = MissingValueError(
                f"value {self._value} not found, but marked as required"
            )
            return None
        except OSError as e:
            if quiet:
                logger.debug("Could not retrieve data for value %s: %s", self._value, e)
                return None
            label = _requirement_label(self._requirements.value_required)
            self._err = wrap_os_error(e, self._value, "retrieving", f"{label} value")
            return None

        self._retrieved = found
        self._value_type = found.type_label
        return found

    def _store(self, found: RegistryValue) -> None:
        """Convert and keep the retrieved data. Raises TypeError on a type mismatch."""

    def _compare(self) -> None:
        """Record evidence when the retained data indicates a reboot."""

    def _record_mismatch(self) -> None:
        if self._evidence_expected.data_other_than_x:
            logger.debug("Reboot evidence found: data mismatch for value %s", self._value)
            self._evidence_found = self._evidence_found.model_copy(update={"data_other_than_x": True})
            self._add_matched_path(self._path)


class KeyInt(_TypedKey):
    """A Key whose integer value data is compared with an expected value."""

    def __init__(self, *args, expected_data: int = 0, **kwargs):
        super().__init__(*args, **kwargs)
        self._expected_data = expected_data
        self._data: int | None = None

    @property
    def expected_data(self) -> int:
        return self._expected_data

    @property
    def data(self) -> int | None:
        return self._data

    def data_display(self) -> str:
        return "" if self._data is None else str(self._data)

    def _store(self, found: RegistryValue) -> None:
        self._data = found.as_int()

    def _compare(self) -> None:
        if self._data != self._expected_data:
            logger.debug("%s does not match expected %s", self._data, self._expected_data)
            self._record_mismatch()


class KeyBinary(_TypedKey):
    """A Key whose binary value data is compared byte for byte."""

    def __init__(self, *args, expected_data: bytes = b"", **kwargs):
        super().__init__(*args, **kwargs)
        self._expected_data = bytes(expected_data)
        self._data: bytes = b""

    @property
    def expected_data(self) -> bytes:
        return self._expected_data

    @property
    def data(self) -> bytes:
        return self._data

    def data_display(self) -> str:
        return "[" + " ".join(str(b) for b in self._data) + "]"

    def _store(self, found: RegistryValue) -> None:
        self._data = found.as_bytes()

    def _compare(self) -> None:
        if self._data != self._expected_data:
            self._record_mismatch()


class KeyString(_TypedKey):
    """A Key whose string value data is compared with an expected string."""

    def __init__(self, *args, expected_data: str = "", **kwargs):
        super().__init__(*args, **kwargs)
        self._expected_data = expected_data
        self._data: str = ""

    @property
    def expected_data(self) -> str:
        return self._expected_data

    @property
    def data(self) -> str:
        return self._data

    def data_display(self) -> str:
        return self._data

    def _store(self, found: RegistryValue) -> None:
        self._data = found.as_str()

    def _compare(self) -> None:
        if self._data != self._expected_data:
            self._record_mismatch()


class KeyStrings(_TypedKey):
    """A Key holding a multi-string (MULTI_SZ) value searched for terms.

    Args:
        expected_data: Search terms; each is matched case-insensitively
            as a substring of the retrieved entries.
        additional_evidence: ``value_found`` for any single match,
            ``all_values_found`` when every term must match.
    """

    def __init__(
        self,
        *args,
        expected_data: Sequence[str] = (),
        additional_evidence: KeyStringsRebootEvidence | None = None,
        **kwargs,
    ):
        super().__init__(*args, **kwargs)
        self._expected_data = tuple(expected_data)
        self._additional_evidence = additional_evidence or KeyStringsRebootEvidence()
        self._strings_found = KeyStringsRebootEvidence()
        self._search_term_matched = ""
        self._data: list[str] = []

    @property
    def expected_data(self) -> list[str]:
        return list(self._expected_data)

    @property
    def data(self) -> list[str]:
        return list(self._data)

    @property
    def additional_evidence(self) -> KeyStringsRebootEvidence:
        return self._additional_evidence.model_copy()

    @property
    def search_term_matched(self) -> str:
        return self._search_term_matched

    def _expects_evidence(self) -> bool:
        return super()._expects_evidence() or self._additional_evidence.any()

    def validate(self) -> None:
        extra = self._additional_evidence
        if extra.value_found and extra.all_values_found:
            raise UnknownRebootEvidenceIndicatorError(
                f"value_found and all_values_found are mutually exclusive for key {self}"
            )
        if self._expected_data and not self._expects_evidence():
            raise UnknownRebootEvidenceIndicatorError(
                f"search terms specified without a match indicator for key {self}"
            )

        super().validate()

        if extra.any() and not self._value:
            raise MissingValueError(f"required registry value not specified for key {self}")
        if extra.any() and not self._expected_data:
            raise MissingValueError(f"no search terms specified for key {self}")

    def cleaned_data(self) -> list[str]:
        """Retrieved entries without blank lines or the rename prefix."""
        cleaned = []
        for entry in self._data:
            if not entry.strip():
                continue
            cleaned.append(entry.replace(PENDING_FILE_RENAME_OPERATIONS_PREFIX, ""))
        return cleaned

    def data_display(self) -> str:
        found = len(self._data)
        skipped = max(found - MULTI_SZ_DATA_DISPLAY_LIMIT, 0)
        samples = self.cleaned_data()[:MULTI_SZ_DATA_DISPLAY_LIMIT]
        return f"Entries [{found} total, {skipped} skipped]: {', '.join(samples)}"

    def _store(self, found: RegistryValue) -> None:
        self._data = found.as_strings()

    def _compare(self) -> None:
        extra = self._additional_evidence
        matched = 0
        for term in self._expected_data:
            if not contains_any(term, self._data, ignore_case=True):
                logger.debug("No matches found for %s", term)
                continue

            matched += 1
            self._search_term_matched = term
            logger.debug("Found match %s in data for value %s", term, self._value)

            if extra.value_found:
                self._strings_found = self._strings_found.model_copy(update={"value_found": True})
                self._add_matched_path(self._path)
                return

        if extra.all_values_found and self._expected_data and matched == len(self._expected_data):
            self._strings_found = self._strings_found.model_copy(update={"all_values_found": True})
            self._add_matched_path(self._path)

    def has_evidence(self) -> bool:
        return super().has_evidence() or self._strings_found.any()

    def reboot_reasons(self) -> list[str]:
        reasons = super().reboot_reasons()
        if self._strings_found.value_found:
            reasons.append(
                f"Found match {self._search_term_matched} in data for value "
                f"{self._value} of key {self}"
            )
        if self._strings_found.all_values_found:
            reasons.append(
                f"All specified strings found in data for value {self._value} of key {self}"
            )
        return reasons


class KeyPair(Asserter):
    """Two keys evaluated together, e.g. to detect diverging values.

    Each member is a plain Key marked with both key and value required.
    The pair is ignored only when both members are ignored.
    """

    def __init__(
        self,
        keys: Iterable[Key],
        additional_evidence: KeyPairRebootEvidence | None = None,
    ):
        super().__init__()
        self._keys = tuple(keys)
        self._additional_evidence = additional_evidence or KeyPairRebootEvidence()
        self._pair_found = KeyPairRebootEvidence()
        self._data: list[RegistryValue] = []

    @property
    def keys(self) -> list[Key]:
        return list(self._keys)

    @property
    def additional_evidence(self) -> KeyPairRebootEvidence:
        return self._additional_evidence.model_copy()

    @property
    def data(self) -> list[bytes]:
        return [value.raw() for value in self._data]

    def __str__(self) -> str:
        return ", ".join(str(key) for key in self._keys)

    def validate(self) -> None:
        if len(self._keys) != 2:
            raise InvalidNumberOfKeysInPairError(f"{len(self._keys)} paths specified")
        for key in self._keys:
            key.validate()

    def evaluate(self) -> None:
        logger.debug("Evaluating key pair %s", self)
        data: list[RegistryValue] = []

        with ExitStack() as stack:
            for key in self._keys:
                handle = key._open()
                if handle is None:
                    return
                stack.enter_context(handle)

                key._evaluate_base(handle)
                if key.err is not None or key.has_evidence():
                    return
                if not self._additional_evidence.paired_values_do_not_match:
                    return
                if not key.value:
                    return

                found = key._lookup_value(handle)
                if found is None:
                    return
                data.append(found)

        self._data = data
        self._compare()

    def _compare(self) -> None:
        first, second = self._data
        if first.raw() == second.raw():
            logger.debug("Data equal for %s and %s", *self._value_paths())
            return

        logger.debug("Reboot evidence found: data for %s does not equal %s", *self._value_paths())
        self._pair_found = self._pair_found.model_copy(update={"paired_values_do_not_match": True})
        for key in self._keys:
            key._add_matched_path(key.path)

    def _value_paths(self) -> tuple[str, str]:
        first, second = self._keys
        return (f"{first.path}\\{first.value}", f"{second.path}\\{second.value}")

    def data_display(self) -> str:
        if len(self._data) != 2:
            return ""
        return ", ".join(value.display() for value in self._data)

    @property
    def err(self) -> Exception | None:
        for key in self._keys:
            if key.err is not None:
                return key.err
        return None

    def has_evidence(self) -> bool:
        if any(key.has_evidence() for key in self._keys):
            return True
        return self._pair_found.paired_values_do_not_match

    def reboot_reasons(self) -> list[str]:
        reasons = []
        for key in self._keys:
            reasons.extend(key.reboot_reasons())
        if self._pair_found.paired_values_do_not_match:
            first, second = self._value_paths()
            reasons.append(f"Data mismatch for {first} and {second}")
        return reasons

    def matched_paths(self) -> list[MatchedPath]:
        paths = []
        for key in self._keys:
            paths.extend(key.matched_paths())
        return paths

    def filter(self, ignore_patterns: Iterable[str]) -> None:
        patterns = list(ignore_patterns)
        for key in self._keys:
            key.filter(patterns)

    def ignored(self) -> bool:
        return bool(self._keys) and all(key.ignored() for key in self._keys)

    def has_ignored(self) -> bool:
        return any(key.has_ignored() for key in self._keys)

    def is_critical_state(self) -> bool:
        if self.ignored() or self.reboot_required():
            return False
        return any(key.is_critical_state() for key in self._keys)
