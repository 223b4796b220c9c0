import argparse
import asyncio
import json
import logging
import mimetypes
import sys
from datetime import datetime, timezone
from pathlib import Path

from docsearch.config.settings import settings
from docsearch.container import close_container, configure_container, container
from docsearch.core.errors import DocSearchError
from docsearch.core.models.document import MatchMode, SearchField
from docsearch.core.models.upload import UploadFile, UploadProgress, UploadStage
from docsearch.core.services.library_service import LibraryService
from docsearch.core.services.search_service import SearchService
from docsearch.core.services.upload_service import UploadService

logging.basicConfig(level=logging.INFO, format="%(message)s")
logger = logging.getLogger(__name__)


def _load_file(path: Path) -> UploadFile:
    content_type = mimetypes.guess_type(path.name)[0] or "application/octet-stream"
    modified = datetime.fromtimestamp(path.stat().st_mtime, tz=timezone.utc)
    return UploadFile(
        name=path.name,
        data=path.read_bytes(),
        content_type=content_type,
        last_modified=modified,
    )


def _print_progress(event: UploadProgress) -> None:
    if event.stage is UploadStage.UPLOADING:
        print(f"  {event.file_name}: {event.progress}%", end="\r", flush=True)
    elif event.stage is UploadStage.RETRYING:
        print(f"\n  {event.file_name}: retry {event.attempt} in {event.retry_delay:.1f}s")
    elif event.stage in (UploadStage.COMPLETED, UploadStage.ERROR, UploadStage.CANCELLED):
        suffix = f" ({event.error})" if event.error else ""
        print(f"\n  {event.file_name}: {event.stage.value}{suffix}")


async def cmd_search(args: argparse.Namespace) -> int:
    """Search command - print matching documents."""
    service = container.resolve(SearchService)
    results = await service.search(args.query, args.mode, args.field)

    if args.json:
        print(json.dumps([r.to_dict() for r in results], ensure_ascii=False, indent=2))
        return 0

    for i, r in enumerate(results, 1):
        where = ""
        if r.has_content_match:
            page = f", page ~{r.estimated_page}" if r.estimated_page else ""
            where = f" [{r.match_percent}%{page}]"
        print(f"{i}. {r.file_name} ({r.id}){where}")
        if r.highlighted_content:
            print(f"   {r.highlighted_content}")
    logger.info(f"{len(results)} results")
    return 0


async def cmd_suggest(args: argparse.Namespace) -> int:
    service = container.resolve(SearchService)
    for s in await service.suggest(args.partial):
        print(s.suggestion)
    return 0


async def cmd_upload(args: argparse.Namespace) -> int:
    """Upload command - upload local files."""
    service = container.resolve(UploadService)
    session = service.new_session()
    session.progress.add_listener(_print_progress)

    files = [_load_file(Path(p)) for p in args.paths]
    metadata = {"owner_name": args.owner} if args.owner else None
    outcomes = await service.upload_many(files, session, metadata)

    for o in outcomes:
        if o.success:
            print(f"{o.file.name} -> {o.result.document_id}")
        else:
            print(f"{o.file.name} failed: {o.error}")
    logger.info(
        f"Uploaded {session.stats.success_count}/{len(outcomes)} "
        f"({session.stats.total_bytes} bytes)"
    )
    return 0 if session.stats.error_count == 0 else 1


async def cmd_list(args: argparse.Namespace) -> int:
    service = container.resolve(LibraryService)
    for r in await service.list_documents(args.limit):
        status = r.processing_status or "-"
        print(f"{r.id}  {r.file_name}  {status}")
    return 0


async def cmd_delete(args: argparse.Namespace) -> int:
    service = container.resolve(LibraryService)
    summary = await service.delete_many(args.ids)
    for item in summary.results:
        print(f"{item['id']}: {'deleted' if item['success'] else item['error']}")
    return 0 if summary.success else 1


async def cmd_watch(args: argparse.Namespace) -> int:
    """Watch command - print the listing whenever it changes."""
    service = container.resolve(LibraryService)
    async for records in service.watch(args.interval, args.limit):
        print(f"--- {len(records)} documents")
        for r in records:
            print(f"{r.id}  {r.file_name}  {r.processing_status or '-'}")
    return 0


COMMANDS = {
    "search": cmd_search,
    "suggest": cmd_suggest,
    "upload": cmd_upload,
    "list": cmd_list,
    "delete": cmd_delete,
    "watch": cmd_watch,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="docsearch", description="Document upload and search")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("search", help="search documents")
    p.add_argument("query")
    p.add_argument("--mode", choices=[m.value for m in MatchMode], default=MatchMode.CONTAINS.value)
    p.add_argument("--field", choices=[f.value for f in SearchField], default=SearchField.ALL.value)
    p.add_argument("--json", action="store_true", help="print results as JSON")

    p = sub.add_parser("suggest", help="suggest file names")
    p.add_argument("partial")

    p = sub.add_parser("upload", help="upload files")
    p.add_argument("paths", nargs="+")
    p.add_argument("--owner", help="owner name recorded as author")

    p = sub.add_parser("list", help="list documents")
    p.add_argument("--limit", type=int, default=None)

    p = sub.add_parser("delete", help="delete documents")
    p.add_argument("ids", nargs="+")

    p = sub.add_parser("watch", help="watch the document listing")
    p.add_argument("--interval", type=float, default=None)
    p.add_argument("--limit", type=int, default=None)

    return parser


async def run(args: argparse.Namespace) -> int:
    configure_container(settings)
    try:
        return await COMMANDS[args.command](args)
    finally:
        await close_container()


def main(argv: list[str] | None = None) -> int:
    """CLI entry point."""
    args = build_parser().parse_args(argv)
    try:
        return asyncio.run(run(args))
    except DocSearchError as e:
        logger.error(f"Error: {e}")
        return 1
    except KeyboardInterrupt:
        return 130


if __name__ == "__main__":
    sys.exit(main())
