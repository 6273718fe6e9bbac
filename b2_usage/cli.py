from __future__ import annotations
"""Command line entry point for the bucket usage audit."""
from dataclasses import dataclass
import logging
import re
import sys
import time
from typing import Callable, Optional, Sequence, TextIO

from .controller import BucketNotFoundError, UsageAuditController
from .models import ListingEntry
from .report import DEFAULT_FORMAT, OUTPUT_FORMATS, render_report
from .services import B2NativeApi, S3CompatibleApi
from .settings import AuditSettings, ConfigurationError, load_settings

LOGGER = logging.getLogger(__name__)

PROGRAM = "pyb2du"
USAGE = (
    f"Usage: {PROGRAM} <bucket> [prefix/] [--verbose] [--output=text|json|csv] "
    "[--versions=true|false] [--backend=b2|s3] [--env-file=PATH] [--debug]"
)
BACKENDS = ("b2", "s3")

_OUTPUT_RE = re.compile(r"--output=(\w+)")
_BACKEND_RE = re.compile(r"--backend=(\w+)")
_ENV_FILE_RE = re.compile(r"--env-file=(\S+)")


@dataclass(frozen=True)
class AuditOptions:
    """Options parsed from the command line."""

    bucket_name: Optional[str]
    prefix: str = ""
    verbose: bool = False
    output: str = DEFAULT_FORMAT
    include_versions: bool = True
    backend: str = "b2"
    env_file: Optional[str] = None
    debug: bool = False


def parse_args(argv: Sequence[str]) -> AuditOptions:
    """Parse ``argv`` (without the program name).

    Flags are recognised anywhere in the joined argument string, so their
    order does not matter.
    """
    args = list(argv)
    bucket_name = args[0] if args and not args[0].startswith("--") else None
    prefix = ""
    if bucket_name is not None and len(args) > 1 and not args[1].startswith("--"):
        prefix = args[1]

    flags = " ".join(args)
    output = _match(_OUTPUT_RE, flags)
    backend = _match(_BACKEND_RE, flags)
    return AuditOptions(
        bucket_name=bucket_name or None,
        prefix=prefix,
        verbose="--verbose" in flags,
        output=output if output in OUTPUT_FORMATS else DEFAULT_FORMAT,
        include_versions="--versions=false" not in flags,
        backend=backend if backend in BACKENDS else "b2",
        env_file=_match(_ENV_FILE_RE, flags),
        debug="--debug" in flags,
    )


def build_api(backend: str, settings: AuditSettings):
    if backend == "s3":
        return S3CompatibleApi(settings.require_s3_endpoint())
    return B2NativeApi(auth_url=settings.auth_url)


def main(
    argv: Sequence[str] | None = None,
    *,
    stdout: TextIO | None = None,
    stderr: TextIO | None = None,
    settings_loader: Callable[..., AuditSettings] = load_settings,
    api_factory: Callable[[str, AuditSettings], object] = build_api,
    clock: Callable[[], float] = time.perf_counter,
) -> int:
    out = stdout or sys.stdout
    err = stderr or sys.stderr
    options = parse_args(sys.argv[1:] if argv is None else argv)

    if not options.bucket_name:
        print(USAGE, file=out)
        return 1

    if options.debug:
        logging.basicConfig(
            level=logging.DEBUG,
            stream=err,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )

    try:
        settings = settings_loader(env_file=options.env_file)
        api = api_factory(options.backend, settings)
    except ConfigurationError as exc:
        print(f"Configuration error: {exc}", file=err)
        return 1

    controller = UsageAuditController(settings, api=api)
    controller.authorize()
    try:
        bucket = controller.resolve_bucket(options.bucket_name)
    except BucketNotFoundError:
        LOGGER.debug("Bucket '%s' is not visible to this account", options.bucket_name)
        print("Bucket not found.", file=err)
        return 1

    progress = _progress_printer(out) if options.verbose else None
    started = clock()
    result = controller.scan(
        bucket,
        prefix=options.prefix,
        include_versions=options.include_versions,
        progress_callback=progress,
    )
    elapsed = clock() - started

    out.write(
        render_report(
            options.output,
            bucket_name=options.bucket_name,
            prefix=options.prefix,
            result=result,
            elapsed=elapsed,
        )
    )
    return 0


def _progress_printer(out: TextIO) -> Callable[[ListingEntry], None]:
    def _print(entry: ListingEntry) -> None:
        print(f"  {entry.path} ({entry.size} bytes)", file=out)

    return _print


def _match(pattern: re.Pattern[str], flags: str) -> Optional[str]:
    match = pattern.search(flags)
    return match.group(1) if match else None
