"""
linemux — Merge files and named pipes line by line

Usage:
    python -m linemux [options] PATH [PATH ...]

Every PATH is opened concurrently, so a named pipe waiting for its
writer does not hold up the others. Output never splits a line from
one source with bytes from another:

    mkfifo /tmp/a /tmp/b
    python -m linemux /tmp/a /tmp/b build.log > merged.log &
    producer-a > /tmp/a &
    producer-b > /tmp/b &
"""

import argparse
import asyncio
import logging
import signal
import sys
from typing import List, Optional

from .config import MuxConfig
from .opener import SourceOpenError
from .runner import LineMux

logger = logging.getLogger("linemux")

PROG = "linemux"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=PROG,
        description="Concatenate files and named pipes without splitting lines"
    )
    parser.add_argument(
        'paths', nargs='*', metavar='PATH',
        help='File or named pipe to read (opened concurrently)'
    )
    parser.add_argument(
        '--output', '-o', default=None,
        help='Write merged output to this file instead of stdout'
    )
    parser.add_argument(
        '--poll-interval', type=float, default=None,
        help='Seconds to wait per readiness poll (default: 0.05)'
    )
    parser.add_argument(
        '--chunk-size', type=int, default=None,
        help='Maximum bytes per read (default: 65536)'
    )
    parser.add_argument(
        '--verbose', '-v', action='store_true',
        help='Enable verbose logging'
    )
    parser.add_argument(
        '--debug', action='store_true',
        help='Enable debug logging'
    )
    return parser


def configure_logging(verbose: bool, debug: bool):
    level = logging.WARNING
    if verbose:
        level = logging.INFO
    if debug:
        level = logging.DEBUG

    logging.basicConfig(
        level=level,
        format='%(asctime)s %(name)s %(levelname)s %(message)s',
        datefmt='%H:%M:%S'
    )


def run(mux: LineMux) -> int:
    """Drive `mux` on a fresh event loop. Returns the exit status."""
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)

    main_task = loop.create_task(mux.run())
    received = []

    def shutdown(sig):
        logger.info(f"Shutting down (signal {sig.name})")
        received.append(sig)
        main_task.cancel()

    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, shutdown, sig)
        except (NotImplementedError, RuntimeError):
            # Not on the main thread, or no signal support on this platform
            pass

    try:
        loop.run_until_complete(main_task)
    except asyncio.CancelledError:
        if received:
            return 128 + received[0]
        raise
    finally:
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.remove_signal_handler(sig)
            except (NotImplementedError, RuntimeError):
                pass
        asyncio.set_event_loop(None)
        loop.close()
    return 0


def main(argv: Optional[List[str]] = None):
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.paths:
        parser.print_usage(sys.stdout)
        print(f"{PROG}: give at least one file or named pipe to merge")
        sys.exit(0)

    configure_logging(args.verbose, args.debug)

    try:
        config = MuxConfig.from_env().override(
            poll_interval=args.poll_interval,
            chunk_size=args.chunk_size,
        )
    except ValueError as e:
        print(f"{PROG}: {e}", file=sys.stderr)
        sys.exit(2)

    if args.output:
        try:
            output = open(args.output, 'wb')
        except OSError as e:
            print(f"{PROG}: cannot open output '{args.output}': {e.strerror or e}",
                  file=sys.stderr)
            sys.exit(1)
    else:
        output = sys.stdout.buffer

    try:
        status = run(LineMux(args.paths, output, config))
    except SourceOpenError as e:
        print(f"{PROG}: {e}", file=sys.stderr)
        sys.exit(1)
    except BrokenPipeError:
        print(f"{PROG}: output closed", file=sys.stderr)
        sys.exit(1)
    finally:
        if args.output:
            output.close()

    sys.exit(status)


if __name__ == '__main__':
    main()
