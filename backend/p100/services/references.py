from __future__ import annotations
from dataclasses import dataclass, field
from sqlalchemy import select, update, delete
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from p100.models.character import Killer, Survivor
from p100.models.artist import Artwork
from p100.models.submission import Submission
from p100.services.storage import ObjectStorage
from p100.services.validation import sanitize_file_name

log = structlog.get_logger()


@dataclass(frozen=True)
class TrackedColumn:
    """
    A column that may hold a public storage URL.
    on_delete (scalar columns only):
      - 'null'       => set NULL
      - 'blank'      => set '' (column is NOT NULL)
      - 'delete_row' => the row only exists for that URL; drop it
    """
    model: type
    column: str
    is_list: bool = False
    on_delete: str = "null"

    @property
    def table(self) -> str:
        return self.model.__tablename__


TRACKED_COLUMNS: tuple[TrackedColumn, ...] = (
    TrackedColumn(Killer, "image_url", on_delete="blank"),
    TrackedColumn(Killer, "background_image_url"),
    TrackedColumn(Killer, "header_url"),
    TrackedColumn(Killer, "artist_urls", is_list=True),
    TrackedColumn(Killer, "legacy_header_urls", is_list=True),
    TrackedColumn(Survivor, "image_url", on_delete="blank"),
    TrackedColumn(Survivor, "background_image_url"),
    TrackedColumn(Survivor, "header_url"),
    TrackedColumn(Survivor, "artist_urls", is_list=True),
    TrackedColumn(Survivor, "legacy_header_urls", is_list=True),
    TrackedColumn(Artwork, "artwork_url", on_delete="delete_row"),
    TrackedColumn(Submission, "screenshot_url", on_delete="blank"),
)


@dataclass
class SweepResult:
    updated: int = 0
    failed: int = 0
    failures: list[str] = field(default_factory=list)

    def _fail(self, where: str):
        self.failed += 1
        self.failures.append(where)


async def _run_one(session: AsyncSession, stmt, result: SweepResult, where: str, count_rows: bool = True):
    # Each write stands alone: commit on success, roll back and move on otherwise
    try:
        res = await session.execute(stmt)
        await session.commit()
    except SQLAlchemyError:
        await session.rollback()
        log.exception("reference_update_failed", target=where)
        result._fail(where)
        return
    result.updated += (res.rowcount or 0) if count_rows else 1


async def _sweep_list(session: AsyncSession, col: TrackedColumn, old_url: str, new_url: str | None, result: SweepResult):
    model = col.model
    attr = getattr(model, col.column)
    try:
        rows = (await session.execute(select(model.id, attr).where(attr.is_not(None)))).all()
    except SQLAlchemyError:
        await session.rollback()
        log.exception("reference_select_failed", table=col.table, column=col.column)
        result._fail(f"{col.table}.{col.column}")
        return

    for row_id, urls in rows:
        urls = list(urls or [])
        if old_url not in urls:
            continue
        if new_url is None:
            rewritten = [u for u in urls if u != old_url]
        else:
            rewritten = [new_url if u == old_url else u for u in urls]
        stmt = update(model).where(model.id == row_id).values({col.column: rewritten})
        await _run_one(session, stmt, result, f"{col.table}.{col.column}#{row_id}", count_rows=False)


async def rewrite_references(session: AsyncSession, old_url: str, new_url: str) -> SweepResult:
    """Point every tracked reference at new_url. Best-effort: failures are logged and counted."""
    result = SweepResult()
    for col in TRACKED_COLUMNS:
        if col.is_list:
            await _sweep_list(session, col, old_url, new_url, result)
            continue
        attr = getattr(col.model, col.column)
        stmt = update(col.model).where(attr == old_url).values({col.column: new_url})
        await _run_one(session, stmt, result, f"{col.table}.{col.column}")
    log.info("references_rewritten", old_url=old_url, new_url=new_url, updated=result.updated, failed=result.failed)
    return result


async def remove_references(session: AsyncSession, url: str) -> SweepResult:
    """Drop every tracked reference to url (null, blank, filter out or delete the row)."""
    result = SweepResult()
    for col in TRACKED_COLUMNS:
        if col.is_list:
            await _sweep_list(session, col, url, None, result)
            continue
        attr = getattr(col.model, col.column)
        if col.on_delete == "delete_row":
            stmt = delete(col.model).where(attr == url)
        else:
            stmt = update(col.model).where(attr == url).values({col.column: "" if col.on_delete == "blank" else None})
        await _run_one(session, stmt, result, f"{col.table}.{col.column}")
    log.info("references_removed", url=url, updated=result.updated, failed=result.failed)
    return result


def renamed_path(old_path: str, new_name: str) -> str:
    """
    Same folder, sanitised new name, original extension kept.
    'folder/a b.png' + 'New Name' -> 'folder/New-Name.png'
    """
    old_name = old_path.rsplit("/", 1)[-1]
    ext = f".{old_name.rsplit('.', 1)[-1]}" if "." in old_name else ""
    name = sanitize_file_name(new_name.strip())
    if ext and not name.endswith(ext):
        name = name.split(".")[0] + ext
    if not name or name == ext:
        raise ValueError("New file name cannot be empty.")
    folder = old_path.rsplit("/", 1)[0] if "/" in old_path else ""
    return f"{folder}/{name}" if folder else name


@dataclass
class RenameResult:
    old_path: str
    new_path: str
    old_url: str
    new_url: str
    sweep: SweepResult


async def rename_stored_file(session: AsyncSession, store: ObjectStorage, bucket: str, old_path: str, new_name: str) -> RenameResult:
    """
    Move the object, then rewrite references to its public URL.
    The move is not undone if reference updates fail.
    """
    new_path = renamed_path(old_path, new_name)
    old_url = store.public_url(bucket, old_path)
    new_url = store.public_url(bucket, new_path)
    if new_path == old_path:
        return RenameResult(old_path, new_path, old_url, new_url, SweepResult())

    store.move(bucket, old_path, new_path)
    log.info("storage_object_moved", bucket=bucket, old_path=old_path, new_path=new_path)
    sweep = await rewrite_references(session, old_url, new_url)
    return RenameResult(old_path, new_path, old_url, new_url, sweep)


async def delete_stored_file(session: AsyncSession, store: ObjectStorage, bucket: str, path: str) -> SweepResult:
    url = store.public_url(bucket, path)
    store.remove(bucket, [path])
    log.info("storage_object_removed", bucket=bucket, path=path)
    return await remove_references(session, url)
