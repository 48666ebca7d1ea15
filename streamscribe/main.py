"""Main application entry point for StreamScribe."""

import sys
import asyncio
import argparse
import logging
from pathlib import Path

from rich.console import Console

from . import __version__
from .config import StreamScribeConfig
from .errors import ConfigurationError
from .services.recognition_service import RecognitionService
from .ui.console_view import ConsoleTranscriptView

logger = logging.getLogger(__name__)


def setup_logging(config: StreamScribeConfig, level: str = "INFO") -> None:
    """Set up logging configuration from YAML config."""
    log_file_path = config.get('logging.file_path', 'logs/streamscribe.log')
    console_output = config.get('logging.console_output', True)

    log_dir = Path(log_file_path).parent
    log_dir.mkdir(parents=True, exist_ok=True)

    handlers = []

    # File handler - always write to file
    file_handler = logging.FileHandler(log_file_path, encoding='utf-8')
    file_handler.setLevel(logging.DEBUG)
    file_formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s'
    )
    file_handler.setFormatter(file_formatter)
    handlers.append(file_handler)

    # Console handler - only if enabled in config
    if console_output:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(logging.WARNING)  # Only show warnings and above on console
        console_formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')
        console_handler.setFormatter(console_formatter)
        handlers.append(console_handler)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(getattr(logging, level.upper()))
    for handler in handlers:
        root_logger.addHandler(handler)

    logger.info("=" * 50)
    logger.info("StreamScribe starting up")
    logger.info(f"Log file: {log_file_path}")
    logger.info(f"Log level set to: {level}")
    logger.info("=" * 50)


async def run(config: StreamScribeConfig, input_path: str, realtime: bool, console: Console) -> bool:
    """Transcribe one file and print the outcome.

    Returns:
        True if the recognition task completed
    """
    service = RecognitionService(config)
    view = ConsoleTranscriptView(service.publisher.topic_prefix, console=console)
    try:
        summary = await service.transcribe_file(input_path, realtime=realtime)
    finally:
        view.close()
        await service.shutdown()

    view.show_summary(summary)
    return summary["success"]


def main() -> None:
    """Main entry point for StreamScribe."""
    parser = argparse.ArgumentParser(
        description="StreamScribe - streaming speech recognition with DashScope Paraformer"
    )

    parser.add_argument(
        "--config",
        type=str,
        default="streamscribe.yaml",
        help="Path to configuration YAML file (default: streamscribe.yaml)"
    )

    parser.add_argument(
        "--input",
        type=str,
        required=True,
        help="16-bit PCM WAV file to transcribe"
    )

    parser.add_argument(
        "--log-level",
        type=str,
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Set logging level (default: logging.level from config, else INFO)"
    )

    parser.add_argument(
        "--no-realtime",
        action="store_true",
        help="Send audio as fast as possible instead of at playback speed"
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"StreamScribe v{__version__}"
    )

    args = parser.parse_args()
    console = Console()

    try:
        config = StreamScribeConfig(args.config)
        setup_logging(config, args.log_level or config.get('logging.level', 'INFO'))
        realtime = False if args.no_realtime else None
        success = asyncio.run(run(config, args.input, realtime, console))
    except KeyboardInterrupt:
        console.print("\n👋 Interrupted")
        sys.exit(130)
    except (ConfigurationError, FileNotFoundError, ValueError) as e:
        console.print(f"❌ Error: {e}", style="red", markup=False)
        logging.error(f"Application error: {e}")
        sys.exit(1)

    sys.exit(0 if success else 1)


if __name__ == "__main__":
    main()
