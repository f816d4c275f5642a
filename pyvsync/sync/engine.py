"""Core sync engine: reconciles a target tree against a source tree."""

import logging
import time
from dataclasses import dataclass, field, replace
from typing import Optional, Union

from ..checksums import CHECKSUM_PREFERENCE, Checksum
from ..config import config
from ..exceptions import (
    VsyncIllegalStateError,
    VsyncNotFoundError,
    VsyncSyncError,
    VsyncUnsupportedChecksumError,
    translate_os_error,
)
from ..permissions import merge_owner_permissions
from ..vfs.base import VirtualFileSystem, resolve_path
from ..vfs.matcher import VirtualPathMatchers
from ..vfs.path import VirtualPath
from ..vfs.stat import StatModel, StatUpdateOption, VirtualFileStat
from ..vfs.volume import VirtualVolume
from .changes import ChangeDetector, PathChanges, PermissionsMode, compare_checksums
from .events import DefaultSyncEventHandler, SyncEventHandler
from .modes import SyncMode
from .options import SyncOptions
from .result import SyncResult

logger = logging.getLogger(__name__)


def _require_stat(path: VirtualPath) -> VirtualFileStat:
    if path.stat is None:
        raise VsyncIllegalStateError(f"Path has not been stat'ed: {path}", path)
    return path.stat


@dataclass
class _DeferredFile:
    """Same-size file whose content equality awaits a checksum."""

    source: VirtualPath
    target: VirtualPath


@dataclass
class _SyncContext:
    """State of one sync run."""

    source_fs: VirtualFileSystem
    source_root: VirtualPath
    target_fs: VirtualFileSystem
    target_root: VirtualPath
    result: SyncResult
    detector: ChangeDetector
    excludes: VirtualPathMatchers
    ignores: VirtualPathMatchers
    permissions_mode: Optional[PermissionsMode]
    deferred: list[_DeferredFile] = field(default_factory=list)

    @property
    def case_sensitive(self) -> bool:
        return self.source_fs.case_sensitive and self.target_fs.case_sensitive


class SyncEngine:
    """Drives a target directory tree towards the state of a source tree.

    The walk is depth-first and single-threaded. Files whose size matches
    but whose modification time differs are collected during the walk and
    verified with one batched checksum call per filesystem at the end.

    Examples:
        >>> engine = SyncEngine(SyncOptions(delete=True))
        >>> result = engine.sync(LocalVolume("src"), LocalVolume("dst"))
        >>> print(result.files_created)
    """

    def __init__(
        self,
        options: Optional[SyncOptions] = None,
        event_handler: Optional[SyncEventHandler] = None,
    ):
        """Initialize sync engine.

        Args:
            options: Sync options (default: merge without deletes)
            event_handler: Receives progress events and performs byte copies
        """
        self.options = options or SyncOptions()
        self.event_handler = event_handler or DefaultSyncEventHandler()

    def sync(
        self,
        source: VirtualVolume,
        target: VirtualVolume,
        mode: SyncMode = SyncMode.MERGE,
    ) -> SyncResult:
        """Sync two volumes, opening and closing their filesystems.

        Args:
            source: Source volume
            target: Target volume
            mode: Sync mode

        Returns:
            SyncResult with the counters of this run
        """
        with source.open_filesystem() as source_fs:
            with target.open_filesystem() as target_fs:
                return self.sync_filesystems(
                    source_fs, source.path, target_fs, target.path, mode
                )

    def sync_filesystems(
        self,
        source_fs: VirtualFileSystem,
        source_path: Union[str, VirtualPath],
        target_fs: VirtualFileSystem,
        target_path: Union[str, VirtualPath],
        mode: SyncMode = SyncMode.MERGE,
    ) -> SyncResult:
        """Sync ``source_path`` on ``source_fs`` onto ``target_path`` on ``target_fs``.

        Relative paths resolve against each filesystem's working directory.

        Raises:
            VsyncNotFoundError: If the source does not exist
            VsyncSyncError: If the options forbid a required change
        """
        source_root = resolve_path(source_fs, source_path)
        target_root = resolve_path(target_fs, target_path)
        result = SyncResult(mode=mode)
        started = time.monotonic()

        source_root = source_fs.stat(source_root)
        if mode == SyncMode.NEST:
            if source_root.is_root():
                raise VsyncSyncError(f"Cannot nest a filesystem root: {source_root}")
            target_root = target_root.resolve(
                source_root.name, source_root.is_directory
            )

        self.event_handler.will_begin(source_fs, source_root, target_fs, target_root)

        ignores = self.options.ignores + config.default_ignores
        permissions_mode = self._permissions_mode(source_fs, target_fs)
        ctx = _SyncContext(
            source_fs=source_fs,
            source_root=source_root,
            target_fs=target_fs,
            target_root=target_root,
            result=result,
            detector=ChangeDetector(
                timestamp_tolerance_ms=self.options.timestamp_tolerance_ms,
                permissions_mode=permissions_mode,
                ownership=self.options.ownership,
            ),
            excludes=VirtualPathMatchers(self.options.excludes),
            ignores=VirtualPathMatchers(ignores),
            permissions_mode=permissions_mode,
        )

        if source_root.is_directory:
            self._sync_root_directory(ctx)
        elif source_root.stat is not None and source_root.stat.is_file:
            self._sync_root_file(ctx)
        else:
            raise VsyncSyncError(f"Unsupported source type: {source_root}", source_root)

        self._process_deferred(ctx)

        elapsed = int((time.monotonic() - started) * 1000)
        self.event_handler.will_end(
            source_fs, source_root, target_fs, ctx.target_root, result, elapsed
        )
        logger.info(f"Sync finished in {elapsed} ms: {result}")
        return result

    def _permissions_mode(
        self, source_fs: VirtualFileSystem, target_fs: VirtualFileSystem
    ) -> Optional[PermissionsMode]:
        if not self.options.permissions:
            return None
        if StatModel.BASIC in (source_fs.stat_model, target_fs.stat_model):
            return PermissionsMode.OWNER
        return PermissionsMode.FULL

    # -------------------------------------------------------------------------
    # Roots
    # -------------------------------------------------------------------------

    def _sync_root_directory(self, ctx: _SyncContext) -> None:
        target = ctx.target_fs.exists(ctx.target_root)
        if target is not None and not target.is_directory:
            self._replace_mismatch(ctx, ctx.source_root, target)
            target = None

        if target is None:
            self._create_root_directory(ctx, ctx.target_root)
            self._sync_directory(ctx, ctx.source_root, ctx.target_root, False)
            changes = PathChanges(missing=True)
            self._update_stat(
                ctx, ctx.source_root, None, ctx.target_root, changes,
                self._stat_options(changes, everything=True), associated=True,
            )
        else:
            self._sync_directory(ctx, ctx.source_root, target, True)

    def _sync_root_file(self, ctx: _SyncContext) -> None:
        target = ctx.target_fs.exists(ctx.target_root)
        if target is not None and target.is_directory:
            ctx.target_root = target.resolve(ctx.source_root.name)
            target = ctx.target_fs.exists(ctx.target_root)
        elif target is None and self.options.parents:
            parent = ctx.target_root.parent()
            if parent is not None:
                self._create_parents(ctx, parent)

        self._sync_file(ctx, ctx.source_root, target, ctx.target_root)

    def _create_root_directory(self, ctx: _SyncContext, path: VirtualPath) -> None:
        parent = path.parent()
        recursively = (
            self.options.parents
            and parent is not None
            and ctx.target_fs.exists(parent) is None
        )
        self.event_handler.will_create_directory(path, recursively)
        if recursively and parent is not None:
            self._create_parents(ctx, parent)
        try:
            ctx.target_fs.mkdir(path)
        except VsyncNotFoundError as e:
            raise VsyncSyncError(
                f"Parent directory of {path} does not exist "
                "(enable parents to create it)",
                path,
            ) from e
        ctx.result.increment_dirs_created()

    def _create_parents(self, ctx: _SyncContext, path: VirtualPath) -> None:
        if ctx.target_fs.exists(path) is not None:
            return
        parent = path.parent()
        if parent is not None:
            self._create_parents(ctx, parent)
        self.event_handler.will_create_directory(path, False)
        ctx.target_fs.mkdir(path)
        ctx.result.increment_dirs_created()

    # -------------------------------------------------------------------------
    # Walk
    # -------------------------------------------------------------------------

    def _sync_directory(
        self,
        ctx: _SyncContext,
        source_dir: VirtualPath,
        target_dir: VirtualPath,
        target_exists: bool,
    ) -> None:
        source_children = sorted(ctx.source_fs.ls(source_dir), key=lambda p: p.name)
        target_children = ctx.target_fs.ls(target_dir) if target_exists else []
        remaining = {c.key(ctx.case_sensitive): c for c in target_children}

        for source in source_children:
            existing = remaining.pop(source.key(ctx.case_sensitive), None)

            if ctx.excludes.matches(ctx.source_root, source):
                self.event_handler.will_exclude_path(source)
                continue

            target = existing or target_dir.resolve(source.name, source.is_directory)
            if ctx.ignores.matches(ctx.target_root, target):
                self.event_handler.will_ignore_target_path(target)
                continue

            source_stat = _require_stat(source)
            if source_stat.is_directory:
                self._sync_child_directory(ctx, source, existing, target)
            elif source_stat.is_file:
                self._sync_file(ctx, source, existing, target)
            else:
                logger.warning(f"Skipping {source_stat.type.value} {source}")
                self.event_handler.will_ignore_source_path(source)

        if not self.options.delete:
            return

        for target in sorted(remaining.values(), key=lambda p: p.name):
            if ctx.excludes.matches(ctx.target_root, target) or ctx.ignores.matches(
                ctx.target_root, target
            ):
                self.event_handler.will_ignore_target_path(target)
                continue
            self._delete(ctx, target)

    def _sync_child_directory(
        self,
        ctx: _SyncContext,
        source: VirtualPath,
        existing: Optional[VirtualPath],
        target: VirtualPath,
    ) -> None:
        if existing is not None and not existing.is_directory:
            self._replace_mismatch(ctx, source, existing)
            existing = None

        created = existing is None
        if created:
            self.event_handler.will_create_directory(target, False)
            ctx.target_fs.mkdir(target)
            ctx.result.increment_dirs_created()

        changed_before = ctx.result.files_total + ctx.result.dirs_total
        self._sync_directory(ctx, source, target, not created)
        changed_after = ctx.result.files_total + ctx.result.dirs_total
        children_changed = changed_after > changed_before

        source_stat = _require_stat(source)
        if existing is None or existing.stat is None:
            changes = PathChanges(missing=True)
            options = self._stat_options(changes, everything=True)
        else:
            changes = ctx.detector.detect(source_stat, existing.stat)
            options = self._stat_options(changes)
            if children_changed and StatUpdateOption.TIMESTAMPS not in options:
                # Adding or removing children moved the directory's mtime
                options.append(StatUpdateOption.TIMESTAMPS)
            if not changes.is_stat_modified() and not children_changed:
                return
        self._update_stat(ctx, source, existing, target, changes, options, created)

    def _sync_file(
        self,
        ctx: _SyncContext,
        source: VirtualPath,
        existing: Optional[VirtualPath],
        target: VirtualPath,
    ) -> None:
        if existing is not None and existing.stat and not existing.stat.is_file:
            self._replace_mismatch(ctx, source, existing)
            existing = None

        changes = ctx.detector.detect(
            _require_stat(source), existing.stat if existing is not None else None
        )
        self._apply_file_changes(ctx, source, existing, target, changes)

    def _apply_file_changes(
        self,
        ctx: _SyncContext,
        source: VirtualPath,
        existing: Optional[VirtualPath],
        target: VirtualPath,
        changes: PathChanges,
    ) -> None:
        ignore_times = self.options.ignore_times
        if changes.is_content_modified(ignore_times):
            self._transfer(ctx, source, target, changes)
            options = self._stat_options(changes, everything=True)
            self._update_stat(ctx, source, existing, target, changes, options, True)
        elif changes.is_deferred_processing(ignore_times):
            if existing is None:
                raise VsyncIllegalStateError(
                    f"No target to checksum for {source}", source
                )
            ctx.deferred.append(_DeferredFile(source=source, target=existing))
        elif changes.is_stat_modified():
            options = self._stat_options(changes)
            self._update_stat(ctx, source, existing, target, changes, options, False)

    # -------------------------------------------------------------------------
    # Deferred checksums
    # -------------------------------------------------------------------------

    def _select_checksum(self, ctx: _SyncContext) -> Optional[Checksum]:
        requested = self.options.checksum
        if requested is not None:
            for fs in (ctx.source_fs, ctx.target_fs):
                if not fs.is_checksum_supported(requested):
                    raise VsyncUnsupportedChecksumError(
                        f"Checksum {requested.value} is not supported on {fs.name}",
                        requested,
                    )
            return requested

        for kind in CHECKSUM_PREFERENCE:
            if ctx.source_fs.is_checksum_supported(
                kind
            ) and ctx.target_fs.is_checksum_supported(kind):
                return kind
        return None

    def _process_deferred(self, ctx: _SyncContext) -> None:
        if not ctx.deferred:
            return

        deferred = ctx.deferred
        ctx.deferred = []
        kind = self._select_checksum(ctx)

        if kind is None:
            logger.warning(
                f"No checksum kind supported by both {ctx.source_fs.name} and "
                f"{ctx.target_fs.name}; transferring {len(deferred)} unverified file(s)"
            )
            for item in deferred:
                changes = ctx.detector.detect(
                    _require_stat(item.source),
                    _require_stat(item.target),
                    checksum=True,
                )
                self._apply_file_changes(
                    ctx, item.source, item.target, item.target, changes
                )
            return

        logger.debug(f"Computing {kind.value} checksums for {len(deferred)} file(s)")
        ctx.source_fs.checksums(kind, [item.source for item in deferred])
        ctx.target_fs.checksums(kind, [item.target for item in deferred])
        ctx.result.increment_checksums(len(deferred))

        for item in deferred:
            source_stat = _require_stat(item.source)
            target_stat = _require_stat(item.target)
            differs = compare_checksums(kind, source_stat, target_stat)
            if differs is None:
                raise VsyncIllegalStateError(
                    f"Missing {kind.value} checksum for {item.source} or {item.target}"
                )
            changes = ctx.detector.detect(
                source_stat, target_stat, checksum=differs
            )
            self._apply_file_changes(
                ctx, item.source, item.target, item.target, changes
            )

    # -------------------------------------------------------------------------
    # Actions
    # -------------------------------------------------------------------------

    def _transfer(
        self,
        ctx: _SyncContext,
        source: VirtualPath,
        target: VirtualPath,
        changes: PathChanges,
    ) -> None:
        self.event_handler.will_transfer_file(source, target, changes)
        known_length = source.stat.size if source.stat is not None else -1
        with ctx.source_fs.read_file(source) as input:
            with ctx.target_fs.write_stream(target) as output:
                try:
                    self.event_handler.copy(input, output, known_length)
                except OSError as e:
                    raise translate_os_error(e, target) from e
        if changes.missing:
            ctx.result.increment_files_created()
        else:
            ctx.result.increment_files_updated()

    def _stat_options(
        self, changes: PathChanges, everything: bool = False
    ) -> list[StatUpdateOption]:
        everything = everything or changes.missing
        options = []
        if self.options.permissions and (everything or changes.permissions):
            options.append(StatUpdateOption.PERMISSIONS)
        if everything or changes.timestamps:
            options.append(StatUpdateOption.TIMESTAMPS)
        if self.options.ownership and (everything or changes.ownership):
            options.append(StatUpdateOption.OWNERSHIP)
        return options

    def _update_stat(
        self,
        ctx: _SyncContext,
        source: VirtualPath,
        existing: Optional[VirtualPath],
        target: VirtualPath,
        changes: PathChanges,
        options: list[StatUpdateOption],
        associated: bool,
    ) -> None:
        if not options:
            return
        stat = _require_stat(source)
        if (
            StatUpdateOption.PERMISSIONS in options
            and ctx.permissions_mode == PermissionsMode.OWNER
        ):
            base = stat.permissions
            if existing is not None and existing.stat is not None:
                base = existing.stat.permissions
            stat = replace(
                stat, permissions=merge_owner_permissions(stat.permissions, base)
            )

        self.event_handler.will_update_stat(
            source, target, changes, options, associated
        )
        ctx.target_fs.update_stat(target, stat, options)
        ctx.result.increment_stats_updated()

    def _replace_mismatch(
        self, ctx: _SyncContext, source: VirtualPath, existing: VirtualPath
    ) -> None:
        if not self.options.force:
            source_type = source.stat.type.value if source.stat else "entry"
            target_type = existing.stat.type.value if existing.stat else "entry"
            raise VsyncSyncError(
                f"Cannot replace {target_type} {existing} with a {source_type} "
                "(enable force to replace it)",
                existing,
            )
        self._delete(ctx, existing)

    def _delete(self, ctx: _SyncContext, target: VirtualPath) -> None:
        if target.is_directory:
            self.event_handler.will_delete_directory(target, True)
            self._delete_tree(ctx, target)
        else:
            self.event_handler.will_delete_file(target, False)
            ctx.target_fs.rm(target)
            ctx.result.increment_files_deleted()

    def _delete_tree(self, ctx: _SyncContext, directory: VirtualPath) -> None:
        for child in ctx.target_fs.ls(directory):
            if child.is_directory:
                self._delete_tree(ctx, child)
            else:
                ctx.target_fs.rm(child)
                ctx.result.increment_files_deleted()
        ctx.target_fs.rmdir(directory)
        ctx.result.increment_dirs_deleted()
