"""Main entry point for a SpoofScout brand scan."""

import asyncio
import logging
import sys

from .config import Config, load_config, validate_config
from .errors import ConfigError
from .pipeline import ScanRunner
from .utils.files import report_path, write_json_report

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    handlers=[
        logging.StreamHandler(sys.stdout),
    ],
)
logger = logging.getLogger(__name__)


async def run_scan(config: Config) -> dict:
    """Run one scan and persist the JSON payload; returns the payload."""
    runner = ScanRunner.from_config(config)
    try:
        report = await runner.run(config.effective_query)
    finally:
        await runner.close()

    payload = report.to_dict()
    path = write_json_report(
        report_path(config.output_dir, report.company_name, report.analyzed_at),
        payload,
    )
    logger.info("Brand report saved to %s", path)
    return payload


def main():
    """Entry point."""
    config = load_config()
    logging.getLogger().setLevel(getattr(logging, config.log_level, logging.INFO))

    validation_errors = validate_config(config)
    if validation_errors:
        for err in validation_errors:
            logger.error(err)
        sys.exit(1)

    try:
        payload = asyncio.run(run_scan(config))
    except ConfigError as exc:
        logger.error("Invalid configuration: %s", exc)
        sys.exit(1)
    except KeyboardInterrupt:
        sys.exit(130)

    counts = payload["severity_counts"]
    logger.info(
        "Findings: %d (critical=%d high=%d medium=%d low=%d)",
        payload["total_findings"],
        counts["critical"],
        counts["high"],
        counts["medium"],
        counts["low"],
    )


if __name__ == "__main__":
    main()
