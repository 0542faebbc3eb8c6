import argparse
import asyncio
import json
import sys
from collections.abc import Awaitable, Callable
from pathlib import Path

from imgstore_client.config import settings
from imgstore_client.core.credentials import make_credential
from imgstore_client.core.exceptions import ImageStoreError
from imgstore_client.core.logging import setup_logging
from imgstore_client.services import batch, image_fetcher
from imgstore_client.services.image_store import ImageStoreClient

Command = Callable[[ImageStoreClient, argparse.Namespace], Awaitable[int]]


def _print_json(obj: object) -> None:
    print(json.dumps(obj, indent=2, sort_keys=True, default=str))


def _build_client(args: argparse.Namespace) -> ImageStoreClient:
    return ImageStoreClient(
        args.url,
        make_credential(args.api_key, args.auth_scheme),
        timeout=args.timeout,
        max_upload_bytes=settings.max_upload_bytes,
        user_agent=settings.user_agent,
    )


async def cmd_health(client: ImageStoreClient, args: argparse.Namespace) -> int:
    """GET /health (public)."""
    health = await client.check_health()
    _print_json(health.model_dump())
    return 0


async def cmd_upload(client: ImageStoreClient, args: argparse.Namespace) -> int:
    result = await client.upload_file(args.file)
    _print_json(result.model_dump())
    return 0


async def cmd_upload_url(client: ImageStoreClient, args: argparse.Namespace) -> int:
    """Fetch a remote image and store it."""
    result = await client.upload_from_url(args.source_url, max_size=args.max_size)
    _print_json(result.model_dump())
    return 0


async def cmd_download(client: ImageStoreClient, args: argparse.Namespace) -> int:
    image = await client.download(args.image_id)
    out_path = Path(args.out) if args.out else Path(batch.local_filename(args.image_id, image.content_type))
    out_path.parent.mkdir(parents=True, exist_ok=True)
    out_path.write_bytes(image.data)
    _print_json({"saved_to": str(out_path.resolve()), "content_type": image.content_type, "size": image.size})
    return 0


async def cmd_info(client: ImageStoreClient, args: argparse.Namespace) -> int:
    info = await client.get_info(args.image_id)
    _print_json(info.model_dump())
    return 0 if info.exists else 1


async def cmd_exists(client: ImageStoreClient, args: argparse.Namespace) -> int:
    exists = await client.exists(args.image_id)
    _print_json({"id": args.image_id, "exists": exists})
    return 0 if exists else 1


async def cmd_delete(client: ImageStoreClient, args: argparse.Namespace) -> int:
    deleted = await client.delete(args.image_id)
    _print_json({"id": args.image_id, "deleted": deleted})
    return 0


async def cmd_url(client: ImageStoreClient, args: argparse.Namespace) -> int:
    print(client.image_url(args.image_id))
    return 0


async def cmd_upload_many(client: ImageStoreClient, args: argparse.Namespace) -> int:
    outcomes = await batch.upload_many(client, args.files)
    _print_json(
        [
            {"file": o.key, "id": o.result.id if o.result else None, "error": o.message}
            for o in outcomes
        ]
    )
    return 0 if all(o.ok for o in outcomes) else 2


async def cmd_download_many(client: ImageStoreClient, args: argparse.Namespace) -> int:
    outcomes = await batch.download_many(client, args.image_ids, args.out_dir)
    _print_json(
        [
            {"id": o.key, "saved_to": str(o.result) if o.result else None, "error": o.message}
            for o in outcomes
        ]
    )
    return 0 if all(o.ok for o in outcomes) else 2


async def cmd_workflow(client: ImageStoreClient, args: argparse.Namespace) -> int:
    """Health, upload, download, info, delete, then confirm the image is gone."""
    steps: dict[str, object] = {}
    steps["health"] = (await client.check_health()).model_dump()

    uploaded = await client.upload_file(args.file)
    steps["upload"] = uploaded.model_dump()

    image = await client.download(uploaded.id)
    matches = image.data == Path(args.file).read_bytes()
    steps["download"] = {"size": image.size, "content_type": image.content_type, "matches": matches}
    if args.out:
        Path(args.out).write_bytes(image.data)

    steps["info"] = (await client.get_info(uploaded.id)).model_dump()
    steps["delete"] = {"deleted": await client.delete(uploaded.id)}
    still_exists = await client.exists(uploaded.id)
    steps["verify"] = {"exists": still_exists}

    _print_json(steps)
    return 0 if matches and not still_exists else 1


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="imgstore", description="Client for the img-store image storage service")
    p.add_argument("--url", default=settings.base_url, help=f"Service base URL (default: {settings.base_url})")
    p.add_argument("--api-key", default=settings.api_key, help="Credential for upload/delete (env: IMG_STORE_API_KEY)")
    p.add_argument(
        "--auth-scheme",
        choices=["bearer", "api-key"],
        default=settings.auth_scheme,
        help="Send the credential as 'Authorization: Bearer' or 'X-API-Key'",
    )
    p.add_argument("--timeout", type=float, default=settings.request_timeout, help="Per-request timeout in seconds")
    p.add_argument("--log-level", default=settings.log_level, help="Log level (logs go to stderr)")
    p.add_argument("--json-logs", action="store_true", default=settings.log_json, help="Emit JSON log lines")

    sub = p.add_subparsers(dest="cmd", required=True)

    sub.add_parser("health", help="Check service health").set_defaults(func=cmd_health)

    up = sub.add_parser("upload", help="Upload a local image file")
    up.add_argument("file", help="Path to image file")
    up.set_defaults(func=cmd_upload)

    uu = sub.add_parser("upload-url", help="Fetch an image from a URL and upload it")
    uu.add_argument("source_url", help="Remote image URL")
    uu.add_argument("--max-size", type=int, default=None, help="Downscale so neither side exceeds N pixels")
    uu.set_defaults(func=cmd_upload_url)

    dl = sub.add_parser("download", help="Download an image")
    dl.add_argument("image_id", help="Image ID")
    dl.add_argument("-o", "--out", default=None, help="Output path (default: <id>.<ext>)")
    dl.set_defaults(func=cmd_download)

    inf = sub.add_parser("info", help="Show content type and length without downloading")
    inf.add_argument("image_id", help="Image ID")
    inf.set_defaults(func=cmd_info)

    ex = sub.add_parser("exists", help="Exit 0 if the image exists, 1 otherwise")
    ex.add_argument("image_id", help="Image ID")
    ex.set_defaults(func=cmd_exists)

    rm = sub.add_parser("delete", help="Delete an image (no-op if already absent)")
    rm.add_argument("image_id", help="Image ID")
    rm.set_defaults(func=cmd_delete)

    u = sub.add_parser("url", help="Print the public URL of an image")
    u.add_argument("image_id", help="Image ID")
    u.set_defaults(func=cmd_url)

    um = sub.add_parser("upload-many", help="Upload several files, one after another")
    um.add_argument("files", nargs="+", help="Paths to image files")
    um.set_defaults(func=cmd_upload_many)

    dm = sub.add_parser("download-many", help="Download several images, one after another")
    dm.add_argument("image_ids", nargs="+", help="Image IDs")
    dm.add_argument("--out-dir", required=True, help="Directory to write images into")
    dm.set_defaults(func=cmd_download_many)

    wf = sub.add_parser("workflow", help="Run the full upload/download/delete cycle against the service")
    wf.add_argument("file", help="Path to image file")
    wf.add_argument("--out", default=None, help="Also save the downloaded copy here")
    wf.set_defaults(func=cmd_workflow)

    return p


def run_command(args: argparse.Namespace, command: Command) -> int:
    async def _main() -> int:
        async with _build_client(args) as client:
            try:
                return await command(client, args)
            finally:
                await image_fetcher.close_client()

    try:
        return asyncio.run(_main())
    except ImageStoreError as e:
        print(f"{type(e).__name__}: {e.detail}", file=sys.stderr)
        return 2
    except (ValueError, OSError) as e:
        print(f"error: {e}", file=sys.stderr)
        return 2


def main(argv: list[str] | None = None) -> int:
    """CLI entry."""
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(args.log_level, json_logs=args.json_logs)
    return run_command(args, args.func)


if __name__ == "__main__":
    raise SystemExit(main())
