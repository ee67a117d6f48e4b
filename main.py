#!/usr/bin/env python3
"""
RHEL Patching Tool - Main Entry Point

Runs pre-patch checks, package updates, conditional reboots and
post-patch validation against RHEL-family EC2 instances managed by SSM.
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent))

from core.exceptions import ConfigurationError
from core.models.config import LogLevel
from core.models.workflow import PhaseGroup
from core.orchestration.workflow_orchestrator import WorkflowOrchestrator
from core.services.config_service import ConfigService
from core.services.report_service import ReportService
from core.utils.logger import LOG_FORMAT
from infrastructure.aws.ssm_remote_host import SSMHostFactory


def setup_logging(verbose: bool = False) -> None:
    """Setup logging configuration."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        handlers=[
            logging.StreamHandler(sys.stdout),
            logging.FileHandler('patching.log')
        ]
    )


def apply_log_level(log_level: LogLevel, verbose: bool = False) -> None:
    """Apply the configured log level; --verbose always wins."""
    logging.getLogger().setLevel(logging.DEBUG if verbose else log_level.value)


async def run_patching(
    config_path: str = 'config.yml',
    tags: Optional[List[str]] = None,
    limit: Optional[List[str]] = None,
    write_report: bool = True,
    verbose: bool = False,
) -> bool:
    """Run the patching workflow. Returns True when every host finished."""
    setup_logging(verbose)
    logger = logging.getLogger(__name__)

    try:
        config_service = ConfigService()
        workflow_config = await config_service.load_config(config_path)
        apply_log_level(workflow_config.log_level, verbose)

        orchestrator = WorkflowOrchestrator(
            config_service=config_service,
            host_factory=SSMHostFactory(workflow_config.aws),
            report_service=ReportService() if write_report else None,
        )

        result = await orchestrator.run_patch_workflow(tags=tags, limit=limit)

        summary = orchestrator.get_summary(result)
        logger.info(f"Run summary:\n{json.dumps(summary, indent=2, default=str)}")
        for path in result.output_files:
            logger.info(f"Report written to: {path}")

        if result.is_successful:
            logger.info("Patching completed successfully on all hosts")
            return True

        logger.error(f"Patching finished with status: {result.status.value}")
        for error in result.errors:
            logger.error(f"Error: {error}")
        return False

    except ConfigurationError as e:
        logger.error(f"Configuration error: {str(e)}")
        return False
    except Exception as e:
        logger.error(f"Failed to run patching workflow: {str(e)}")
        return False


def parse_arguments(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description='RHEL Patching Tool - pre-checks, updates, reboots and validation',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Full run against every configured host
  python main.py --config config.yml

  # Pre-patch checks only
  python main.py --tags pre_patch

  # Patch and validate two hosts
  python main.py --tags patch post_patch --limit web01 i-0abc123def4567890
        """
    )

    parser.add_argument(
        '--config',
        default='config.yml',
        help='Path to configuration file (default: config.yml)'
    )
    parser.add_argument(
        '--tags',
        nargs='+',
        choices=[g.value for g in PhaseGroup],
        help='Run only the selected phase groups (default: all)'
    )
    parser.add_argument(
        '--limit',
        nargs='+',
        metavar='HOST',
        help='Restrict the run to these host names or instance IDs'
    )
    parser.add_argument(
        '--no-report',
        action='store_true',
        help='Do not write a JSON run report'
    )
    parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Enable verbose logging'
    )

    return parser.parse_args(argv)


async def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    args = parse_arguments(argv)

    try:
        success = await run_patching(
            config_path=args.config,
            tags=args.tags,
            limit=args.limit,
            write_report=not args.no_report,
            verbose=args.verbose,
        )
        return 0 if success else 1

    except KeyboardInterrupt:
        print("\nOperation cancelled by user")
        return 1


def cli() -> None:
    sys.exit(asyncio.run(main()))


if __name__ == '__main__':
    cli()
