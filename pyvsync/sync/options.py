"""Options controlling a sync run."""

from dataclasses import asdict, dataclass, field
from typing import Any, Optional

from ..checksums import Checksum
from ..exceptions import VsyncConfigError
from ..utils import DEFAULT_TIMESTAMP_TOLERANCE_MS


@dataclass
class SyncOptions:
    """Options controlling a sync run.

    Examples:
        >>> options = SyncOptions.from_dict({"delete": True, "excludes": ["*.tmp"]})
        >>> options.delete
        True
    """

    delete: bool = False
    """Delete target entries that have no source counterpart"""

    parents: bool = False
    """Create missing parent directories of the target"""

    force: bool = False
    """Replace target entries whose type differs from the source"""

    ignore_times: bool = False
    """Verify same-size files by checksum even when times match"""

    excludes: list[str] = field(default_factory=list)
    """Rules for source paths that are skipped"""

    ignores: list[str] = field(default_factory=list)
    """Rules for target paths that are never touched"""

    permissions: bool = True
    """Compare and sync permission bits"""

    ownership: bool = False
    """Compare and sync owner/group ids"""

    timestamp_tolerance_ms: int = DEFAULT_TIMESTAMP_TOLERANCE_MS
    """Largest modification time difference still considered equal"""

    checksum: Optional[Checksum] = None
    """Checksum kind for deferred checks (None: best common kind)"""

    def add_ignore(self, rule: str) -> "SyncOptions":
        self.ignores.append(rule)
        return self

    def add_exclude(self, rule: str) -> "SyncOptions":
        self.excludes.append(rule)
        return self

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SyncOptions":
        """Create options from a dictionary (e.g. parsed JSON).

        Raises:
            VsyncConfigError: If a key is unknown or a value has the wrong type
        """
        known = set(cls.__dataclass_fields__)
        unknown = set(data) - known
        if unknown:
            names = ", ".join(sorted(unknown))
            raise VsyncConfigError(f"Unknown sync options: {names}")

        values = dict(data)
        for key in ("excludes", "ignores"):
            if key in values:
                if not isinstance(values[key], list):
                    raise VsyncConfigError(f"'{key}' must be a list of rules")
                values[key] = [str(v) for v in values[key]]
        if values.get("checksum") is not None:
            try:
                values["checksum"] = Checksum.from_string(str(values["checksum"]))
            except ValueError as e:
                raise VsyncConfigError(str(e)) from e
        if "timestamp_tolerance_ms" in values:
            try:
                values["timestamp_tolerance_ms"] = int(values["timestamp_tolerance_ms"])
            except (TypeError, ValueError) as e:
                raise VsyncConfigError("'timestamp_tolerance_ms' must be an int") from e
        return cls(**values)

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["checksum"] = self.checksum.value if self.checksum else None
        return data
