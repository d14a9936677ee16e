from __future__ import annotations

import argparse
import logging

from graph_export.errors import ConfigurationError, NodeIneligible, NodeNotFound, StoreUnavailable
from graph_export.export.exporter import Exporter, SingleNodeStatus
from graph_export.export.sinks import (
    FileSystemSink,
    S3Config,
    S3Sink,
    Sink,
    SinkDispatcher,
    build_s3_client,
)
from graph_export.graph.neo4j_store import Neo4jConfig, Neo4jGraphStore
from graph_export.graph.store import GraphStore
from graph_export.settings import ExportSettings, load_settings

logger = logging.getLogger("graph_export.cli")

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_CONFIG = 2
EXIT_NOT_FOUND = 3
EXIT_INELIGIBLE = 4
EXIT_STORE = 5


def _configure_logging(level: str | None = None) -> None:
    level = (level or "INFO").upper()
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")


def build_store(settings: ExportSettings) -> GraphStore:
    password = settings.neo4j_password.get_secret_value() if settings.neo4j_password else ""
    return Neo4jGraphStore(
        Neo4jConfig(
            uri=settings.neo4j_uri or "",
            user=settings.neo4j_user,
            password=password,
            database=settings.neo4j_database,
            batch_size=settings.neo4j_batch_size,
            connect_attempts=settings.neo4j_connect_attempts,
        )
    )


def build_dispatcher(settings: ExportSettings) -> SinkDispatcher:
    sinks: list[Sink] = []
    if settings.output_folder:
        sinks.append(FileSystemSink(settings.output_folder))
    if settings.s3_bucket:
        cfg = S3Config(
            bucket=settings.s3_bucket,
            prefix=settings.s3_key,
            public_read=settings.s3_public,
            region=settings.s3_region,
            endpoint_url=settings.s3_endpoint_url,
            access_key=settings.s3_access_key,
            secret_key=settings.s3_secret_key.get_secret_value() if settings.s3_secret_key else None,
        )
        sinks.append(S3Sink(cfg, build_s3_client(cfg)))
    return SinkDispatcher(sinks)


def _load(args: argparse.Namespace, **overrides) -> ExportSettings:
    overrides = {k: v for k, v in overrides.items() if v is not None}
    settings = load_settings(args.env_file, **overrides)
    _configure_logging(settings.log_level)
    settings.validate_for_run()
    logger.info("Neo4j: %s (db=%s)", settings.neo4j_uri, settings.neo4j_database)
    logger.info("Output folder: %s", settings.output_folder)
    logger.info("S3 bucket: %s, key prefix: %r, public: %s", settings.s3_bucket, settings.s3_key, settings.s3_public)
    return settings


def _exporter(store: GraphStore, settings: ExportSettings) -> Exporter:
    return Exporter(
        store,
        build_dispatcher(settings),
        settings.sources,
        settings.limits,
        workers=settings.workers,
        wave_timeout_s=settings.wave_timeout_s,
    )


def _run_all(settings: ExportSettings) -> int:
    store = build_store(settings)
    try:
        stats = _exporter(store, settings).run()
    finally:
        store.close()
    print(
        f"roots={stats.roots_seen} eligible={stats.roots_eligible} exported={stats.roots_exported} "
        f"documents={stats.documents_written} failed={stats.failed} elapsed_ms={stats.elapsed_ms:.0f}"
    )
    return EXIT_OK


def _run_one(settings: ExportSettings, node_id: int) -> int:
    store = build_store(settings)
    try:
        result = _exporter(store, settings).run_test_node(node_id)
    finally:
        store.close()
    written = result.outcome.written if result.outcome else []
    print(f"node={node_id} status={result.status.value} documents={len(written)}")
    result.raise_for_status()
    return EXIT_FAILED if result.status is SingleNodeStatus.FAILED else EXIT_OK


def cmd_version() -> int:
    from graph_export import __version__

    print(__version__)
    return EXIT_OK


def cmd_run(args: argparse.Namespace) -> int:
    settings = _load(
        args,
        workers=args.workers,
        output_folder=args.output_folder,
        max_level=args.max_level,
        max_nodes=args.max_nodes,
        max_siblings=args.max_siblings,
    )
    # a non-zero configured id narrows the run to that node
    if settings.test_node_id:
        return _run_one(settings, settings.test_node_id)
    return _run_all(settings)


def cmd_test_node(args: argparse.Namespace) -> int:
    settings = _load(args, output_folder=args.output_folder, test_node_id=args.node_id)
    return _run_one(settings, args.node_id)


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="graph-export")
    p.add_argument("--env-file", default=None, help="Optional .env file with GRAPH_EXPORT_* settings")
    sub = p.add_subparsers(dest="cmd", required=True)

    sub.add_parser("version").set_defaults(func=lambda _a: cmd_version())

    run = sub.add_parser("run", help="Export every eligible node")
    run.add_argument("--workers", type=int, default=None)
    run.add_argument("--output-folder", default=None)
    run.add_argument("--max-level", type=int, default=None)
    run.add_argument("--max-nodes", type=int, default=None)
    run.add_argument("--max-siblings", type=int, default=None)
    run.set_defaults(func=cmd_run)

    test = sub.add_parser("test-node", help="Export a single node and exit")
    test.add_argument("node_id", type=int)
    test.add_argument("--output-folder", default=None)
    test.set_defaults(func=cmd_test_node)

    return p


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        return args.func(args)
    except ConfigurationError as e:
        _configure_logging()
        logger.error("%s", e)
        return EXIT_CONFIG
    except StoreUnavailable as e:
        logger.error("%s", e)
        return EXIT_STORE
    except NodeNotFound as e:
        logger.error("%s", e)
        return EXIT_NOT_FOUND
    except NodeIneligible as e:
        logger.error("%s", e)
        return EXIT_INELIGIBLE


def app() -> None:
    raise SystemExit(main())


if __name__ == "__main__":
    app()
