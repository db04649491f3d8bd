from __future__ import annotations

import argparse
import logging
import sys
from typing import List, Optional, Sequence

from apitest.config_loader import TestSet, apply_env_overrides, load_test_set
from apitest.errors import ConfigError
from apitest.evaluator import NonJSONPolicy
from apitest.metrics import RunMetrics
from apitest.monitor import DEFAULT_DELAY_SECONDS, Monitor
from apitest.reporter import Reporter
from apitest.request_engine import RequestEngine
from apitest.runner import RunSummary, TestRunner
from apitest.substitution import UndefinedPolicy


logger = logging.getLogger("apitest")

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_CONFIG = 2

DEFAULT_METRICS_PORT = 2112


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="apitest", description="Declarative HTTP API test runner"
    )
    parser.add_argument("spec", nargs="?", help="YAML file containing a list of test requests")
    parser.add_argument("-f", "--file", dest="file", help="YAML file containing a list of test requests")
    parser.add_argument(
        "-t", "--test", help="the name of a single test to run (use quotes if name has spaces)"
    )
    parser.add_argument(
        "-e",
        "--env",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="variables to add to the test environment, e.g. myvar=test123",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="print response bodies")
    parser.add_argument(
        "-m", "--monitor", action="store_true", help="continually run checks and expose metrics"
    )
    parser.add_argument(
        "-p",
        "--port",
        type=int,
        default=DEFAULT_METRICS_PORT,
        help="port for the metrics listener (used with --monitor)",
    )
    parser.add_argument(
        "-d",
        "--delay",
        type=int,
        default=DEFAULT_DELAY_SECONDS,
        help="delay in seconds between monitoring runs (used with --monitor)",
    )
    parser.add_argument("--timeout", type=float, help="per-request timeout in seconds")
    parser.add_argument("--report-file", help="Optional output path for plain-text report")
    parser.add_argument("--no-color", action="store_true", help="disable coloured output")
    parser.add_argument(
        "--undefined-as-empty",
        action="store_true",
        help="render undefined {{ variables }} as empty strings instead of failing the request",
    )
    parser.add_argument(
        "--require-json",
        action="store_true",
        help="fail requests whose field checks meet a non-JSON response instead of skipping them",
    )
    return parser


def configure_logging(verbose: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(message)s",
    )
    # urllib3 connection chatter drowns the request log in verbose mode.
    logging.getLogger("urllib3").setLevel(logging.WARNING)


def run(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.verbose)

    filename = args.file or args.spec
    if not filename:
        logger.error("No file specified. Usage: apitest -f test.yaml")
        return EXIT_CONFIG

    try:
        test_set = load_test_set(filename)
        variables = dict(test_set.environment.vars)
        apply_env_overrides(variables, args.env)
    except ConfigError as exc:
        logger.error("%s", exc)
        return EXIT_CONFIG

    timeout = args.timeout if args.timeout is not None else test_set.environment.timeout_seconds
    metrics = RunMetrics() if args.monitor else None

    with RequestEngine(timeout_seconds=timeout) as engine:
        runner = TestRunner(
            engine,
            metrics=metrics,
            undefined=UndefinedPolicy.EMPTY if args.undefined_as_empty else UndefinedPolicy.ERROR,
            non_json=NonJSONPolicy.FAIL if args.require_json else NonJSONPolicy.SKIP,
            verbose=args.verbose,
        )

        if args.monitor:
            return _run_monitor(runner, test_set, variables, args, metrics)

        logger.info("Running tests...")
        summary = runner.run(test_set, variables, only=args.test)

    _report(summary, filename, args)
    if not summary.passed:
        logger.error("FAIL  %s (%d requests, %d failed)", filename, summary.total, summary.failed)
        return EXIT_FAILED
    logger.info("PASSED  %s (%d requests)", filename, summary.total)
    return EXIT_OK


def _report(summary: RunSummary, filename: str, args: argparse.Namespace) -> None:
    reporter = Reporter(use_color=not args.no_color, title=filename)
    reporter.add_summary(summary)
    reporter.print()
    if args.report_file:
        reporter.write(args.report_file)


def _run_monitor(
    runner: TestRunner,
    test_set: TestSet,
    variables: dict,
    args: argparse.Namespace,
    metrics: RunMetrics,
) -> int:
    try:
        metrics.serve(args.port)
    except OSError as exc:
        logger.error("Could not start metrics listener on port %d: %s", args.port, exc)
        return EXIT_CONFIG

    monitor = Monitor(
        runner,
        test_set,
        variables,
        delay_seconds=args.delay,
        only=args.test,
    )
    monitor.run_forever()
    logger.info("Server stopped")
    return EXIT_OK


def main(argv: Optional[List[str]] = None) -> None:
    sys.exit(run(argv))


if __name__ == "__main__":
    main()
