#!/usr/bin/env python3

# ruff: noqa: T201

from __future__ import annotations

import argparse
import logging
import sys
from typing import TYPE_CHECKING

from dotenv import load_dotenv

from esenricher.app import build_request, enrich_documents
from esenricher.config import (
    DEFAULT_DOCUMENT_TYPE,
    DEFAULT_ID_FIELD,
    DEFAULT_PORT,
    ConfigurationError,
    EnrichmentSettings,
    configure_logging,
    default_host,
    default_index_name,
    get_elasticsearch_config,
)
from esenricher.domain.selection import SelectionError
from esenricher.domain.types import JobOutcome

if TYPE_CHECKING:
    from collections.abc import Sequence

    from esenricher.domain.types import JobSummary

log = logging.getLogger(__name__)

_DEFAULTS = EnrichmentSettings()
_MAX_LISTED_FAILURES = 20
_EXIT_ABORTED = 130


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description=(
            "Enrich Logstash formatted Elasticsearch documents sharing a correlation ID "
            "with additional context, as an asynchronous batch job"
        )
    )
    parser.add_argument(
        "--host",
        type=str,
        default=None,
        help="Elasticsearch hostname (default: the local hostname)",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=DEFAULT_PORT,
        help="Elasticsearch HTTP API port (default: %(default)s)",
    )
    parser.add_argument(
        "--scheme",
        choices=("http", "https"),
        default="http",
        help="Elasticsearch HTTP API scheme (default: %(default)s)",
    )
    parser.add_argument(
        "--index",
        type=str,
        default=None,
        help="Elasticsearch index name (default: today's logstash-YYYY.MM.DD index)",
    )
    parser.add_argument(
        "--type",
        dest="doc_type",
        type=str,
        default=DEFAULT_DOCUMENT_TYPE,
        help="Elasticsearch document type, empty for typeless indices (default: %(default)s)",
    )
    parser.add_argument(
        "--id-field",
        type=str,
        default=DEFAULT_ID_FIELD,
        help="Name of the field that contains the correlation ID (default: %(default)s)",
    )
    parser.add_argument(
        "--id-value",
        type=str,
        default=None,
        help="Value of the id field; ALL documents matching it will be updated",
    )
    parser.add_argument(
        "--json",
        dest="payload",
        type=str,
        default="{}",
        help="JSON document merged into every matching document (default: no-op %(default)s)",
    )
    parser.add_argument(
        "--upsert",
        action="store_true",
        help="Create the document from the payload when it no longer exists",
    )
    parser.add_argument(
        "--workers",
        type=int,
        default=_DEFAULTS.workers,
        help="Number of concurrent bulk workers (default: %(default)s)",
    )
    parser.add_argument(
        "--batch-size",
        type=int,
        default=_DEFAULTS.max_batch_size,
        help="Maximum number of updates per bulk request (default: %(default)s)",
    )
    parser.add_argument(
        "--flush-interval",
        type=float,
        default=_DEFAULTS.flush_interval,
        help="Seconds after which a partial batch is sent anyway (default: %(default)s)",
    )
    parser.add_argument(
        "--page-size",
        type=int,
        default=_DEFAULTS.page_size,
        help="Maximum number of matching documents to enrich (default: %(default)s)",
    )
    parser.add_argument(
        "--queue-size",
        type=int,
        default=None,
        help="Maximum number of queued updates (defaults to two batches per worker)",
    )
    parser.add_argument(
        "--no-refresh",
        action="store_true",
        help="Do not ask Elasticsearch to refresh after each bulk request",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable debug logging",
    )
    return parser.parse_args(list(argv))


def _build_settings(args: argparse.Namespace) -> EnrichmentSettings:
    return EnrichmentSettings(
        workers=args.workers,
        max_batch_size=args.batch_size,
        flush_interval=args.flush_interval,
        page_size=args.page_size,
        queue_size=args.queue_size,
        refresh=not args.no_refresh,
    )


def format_summary(summary: JobSummary) -> str:
    lines = [
        f"Selected: {summary.total_selected}, "
        f"succeeded: {summary.total_succeeded}, failed: {summary.total_failed}",
    ]
    if summary.outcome is JobOutcome.NO_MATCHES:
        lines.append("No documents matched, nothing was enriched.")
    elif summary.outcome is JobOutcome.PARTIAL_FAILURE:
        lines.append("Enrichment completed with failures:")
        for result in summary.failures[:_MAX_LISTED_FAILURES]:
            lines.append(f"  {result.target}: {result.failure}")
        hidden = len(summary.failures) - _MAX_LISTED_FAILURES
        if hidden > 0:
            lines.append(f"  ... and {hidden} more")
    else:
        lines.append("All selected documents were enriched.")
    if summary.truncated:
        lines.append(
            f"Only {summary.total_selected} of {summary.total_matches} matching documents "
            "were selected; the rest were not enriched."
        )
    if summary.cancelled:
        lines.append("The run was cancelled before every selected document was queued.")
    return "\n".join(lines)


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    parsed_args = _parse_args(args_list)
    configure_logging(level=logging.DEBUG if parsed_args.verbose else logging.INFO)

    try:
        settings = _build_settings(parsed_args)
        elasticsearch = get_elasticsearch_config(
            host=parsed_args.host or default_host(),
            port=parsed_args.port,
            scheme=parsed_args.scheme,
        )
        request = build_request(
            index=parsed_args.index or default_index_name(),
            doc_type=parsed_args.doc_type,
            id_field=parsed_args.id_field,
            id_value=parsed_args.id_value,
            payload_json=parsed_args.payload,
            upsert=parsed_args.upsert,
        )
    except ConfigurationError:
        log.exception("Enrichment failed, invalid configuration")
        sys.exit(2)

    try:
        summary = enrich_documents(
            request,
            settings=settings,
            elasticsearch=elasticsearch,
            handle_signals=True,
        )
    except KeyboardInterrupt:
        log.error("Enrichment aborted, queued updates may not have been applied")
        sys.exit(_EXIT_ABORTED)
    except SelectionError:
        log.exception("Enrichment failed")
        sys.exit(1)
    except Exception:
        log.exception("Fatal error during enrichment")
        sys.exit(1)

    print(format_summary(summary))
    log.info("Done.")


def cli() -> None:
    """Console script entry point; reads a local .env file first."""
    load_dotenv()
    main()


if __name__ == "__main__":
    cli()
