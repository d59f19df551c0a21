# bodegix/reader/main.py
"""
QR reader process.

The USB scanner types each decoded payload followed by Enter, so the input
is one scan per line. Each line goes through the extractor and, if a code
comes out, is forwarded to the backend. Nothing is sent for lines without
a code.

    python -m bodegix.reader.main
    python -m bodegix.reader.main --input /dev/ttyACM0
"""
import argparse
import logging
import sys
from typing import Iterable, Optional, TextIO

from bodegix.back.core.logging_config import setup_logging
from bodegix.reader.client import ScanClient, ScanReply
from bodegix.reader.config import ReaderSettings
from bodegix.reader.extractor import extract_code_with_strategy

logger = logging.getLogger(__name__)


def handle_line(line: str, client: ScanClient) -> Optional[ScanReply]:
    code, strategy = extract_code_with_strategy(line)
    if not code:
        logger.warning("no valid code in scan: %r", line.strip())
        return None

    logger.info("code extracted (%s): %s", strategy, code)
    reply = client.scan(code)

    if reply.granted:
        logger.info("access granted locker=%s unlocked=%s", reply.data.get("locker_id"), reply.data.get("unlocked"))
    else:
        logger.warning("access denied: %s", reply.outcome)
    return reply


def run(lines: Iterable[str], client: ScanClient) -> int:
    """Processes scans until the input ends. Returns how many were granted."""
    granted = 0
    for line in lines:
        if not line.strip():
            continue
        reply = handle_line(line, client)
        if reply is not None and reply.granted:
            granted += 1
    return granted


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Bodegix QR reader")
    parser.add_argument("--input", help="read scans from this file/device instead of stdin")
    parser.add_argument("--api-url", help="backend base URL (overrides BODEGIX_API_URL)")
    parser.add_argument("--reader-id", type=int, help="overrides READER_ID")
    parser.add_argument("--log-level", help="overrides LOG_LEVEL")
    return parser.parse_args(argv)


def main(argv=None, stdin: TextIO = sys.stdin) -> int:
    args = parse_args(argv)
    config = ReaderSettings()

    setup_logging(args.log_level or config.LOG_LEVEL)

    try:
        client = ScanClient(
            base_url=args.api_url or config.BODEGIX_API_URL,
            reader_id=args.reader_id or config.READER_ID,
            api_key=config.READER_API_KEY,
            timeout=config.READER_TIMEOUT,
        )
    except ValueError as e:
        logger.error("reader not configured: %s", e)
        return 2

    logger.info("scanning...")
    try:
        with client:
            if args.input:
                with open(args.input, encoding="utf-8", errors="replace") as source:
                    run(source, client)
            else:
                run(stdin, client)
    except KeyboardInterrupt:
        logger.info("reader stopped")
    return 0


if __name__ == "__main__":
    sys.exit(main())
