"""Command-Line Interface handler for SubReader."""

import argparse
import asyncio
import json
import logging
import os
import sys

from .config_loader import ConfigLoader
from .log_setup import setup_logging
from .session import ReaderSession
from .translator import as_async, build_translator
from .exceptions import SubReaderError, ConfigurationError
from .utils import file_extension, format_clock

logger = logging.getLogger(__name__)


async def _translation_disabled(text: str) -> str:
    raise SubReaderError("Translation is disabled; pass --translate to enable it.")


class CLIHandler:
    """Parses arguments and runs a reader session over one subtitle file."""

    def __init__(self):
        self.parser = self._create_parser()
        self.session = None

    def _create_parser(self) -> argparse.ArgumentParser:
        """Creates the argument parser for the CLI."""
        parser = argparse.ArgumentParser(
            description="SubReader: read, search and replay SRT/VTT/ASS subtitle files.",
            formatter_class=argparse.ArgumentDefaultsHelpFormatter
        )
        parser.add_argument(
            "file",
            help="Path to the subtitle file (.srt, .vtt or .ass)."
        )
        parser.add_argument(
            "-c", "--config",
            default="config.yaml",
            help="Path to the configuration YAML file."
        )
        parser.add_argument(
            "--log-level",
            default="INFO",
            choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
            help="Set the logging level for console and file output."
        )
        parser.add_argument(
            "-s", "--search",
            default=None,
            help="Only list lines containing this text (case-insensitive)."
        )
        parser.add_argument(
            "--json",
            action="store_true",
            help="List the (optionally filtered) lines as JSON instead of a table."
        )
        parser.add_argument(
            "--play",
            action="store_true",
            help="Replay the document in real time, printing each line as it becomes active."
        )
        parser.add_argument(
            "-t", "--translate",
            type=int,
            default=None,
            metavar="INDEX",
            help="Translate the line at this 0-based index with the Hugging Face models."
        )
        parser.add_argument(
            "--device",
            default=None,
            choices=["cuda", "cpu"],
            help="Override the translation device specified in config."
        )
        return parser

    def _print_cues(self, session: ReaderSession, query: str, as_json: bool = False) -> None:
        if as_json:
            print(json.dumps(session.cue_dicts(query or ""), ensure_ascii=False, indent=2))
            return
        matches = session.search(query or "")
        for index, cue in matches:
            print(f"[{index:>4}] {format_clock(cue.start_seconds)}  {cue.text}")
        print(f"{len(matches)} of {len(session.document.cues)} lines shown.")

    async def _play(self, session: ReaderSession) -> None:
        clock = session.clock
        clock.play()
        while clock.playing:
            await asyncio.sleep(clock.tick_interval)
        print(f"Reached {format_clock(clock.elapsed)}.")

    def _report_active(self, index: int) -> None:
        cue = self.session.document.cues[index]
        print(f"{format_clock(self.session.clock.elapsed)}  {cue.text}")

    def run(self) -> None:
        """Parses arguments, sets up logging, loads config, and runs the session."""
        args = self.parser.parse_args()

        log_level = getattr(logging, args.log_level.upper(), logging.INFO)
        setup_logging(log_level=log_level)

        try:
            config = ConfigLoader().load_config(args.config)
        except FileNotFoundError:
            logger.warning(f"Configuration file not found: {args.config}. Using defaults.")
            config = None
        except ConfigurationError as e:
            logger.critical(f"Failed to load configuration from {args.config}: {e}", exc_info=True)
            sys.exit(1)

        if config is not None:
            setup_logging(log_level=log_level, log_dir=config['log_dir'], log_file=config['log_file'])
            if args.device:
                logger.info(f"Overriding device from config with CLI argument: {args.device}")
                config['device'] = args.device

        if not os.path.isfile(args.file):
            logger.critical(f"Input subtitle file not found or is not a file: {args.file}")
            sys.exit(1)

        try:
            translate = _translation_disabled
            if args.translate is not None:
                translate = as_async(build_translator(config or {'device': args.device or 'cpu'}))

            session = ReaderSession(translate, config=config, on_active_change=self._report_active)
            self.session = session

            with open(args.file, 'rb') as f:
                data = f.read()
            document = session.load(data, file_extension(args.file), os.path.basename(args.file))
            print(f"{document.original_name} ({document.encoding}), duration {format_clock(document.cues.total_duration)}")

            if args.play:
                asyncio.run(self._play(session))
            else:
                self._print_cues(session, args.search, as_json=args.json)

            if args.translate is not None:
                cue = document.cues[args.translate]
                translated = asyncio.run(session.jump_to_line(args.translate))
                print(f"{cue.text}\n  -> {translated if translated is not None else '(translation failed)'}")

            session.close()
            sys.exit(0)

        except SubReaderError as e:
            logger.error(f"A SubReader error occurred: {e}")
            sys.exit(1)
        except KeyboardInterrupt:
            logger.warning("Process interrupted by user (Ctrl+C). Exiting.")
            sys.exit(1)
        except Exception as e:
            logger.critical(f"An unexpected critical error occurred at the top level: {e}", exc_info=True)
            sys.exit(2)


def main() -> None:
    CLIHandler().run()
