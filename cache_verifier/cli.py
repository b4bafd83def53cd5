#!/usr/bin/env python3
"""
Cache Verifier Command Line Entry Point

Runs one verification check against a cache endpoint.

Usage:
    cache-verifier --url hotrod://10.0.0.5:11222 --service-name datagrid \\
        --trust-store-dir /var/run/trust basic
    cache-verifier ... protected                    # Anonymous access must fail
    cache-verifier ... types                        # String/int/bytes round trips
    cache-verifier ... sustained --duration 60      # Write for 60 seconds
    cache-verifier ... topology --expected-address 10.0.0.5 --expected-address 10.0.0.6
    cache-verifier ... nodes                        # Print the member count
    cache-verifier ... eviction --max-iterations 5000

Environment Variables:
    CACHE_VERIFIER_USERNAME / _PASSWORD / _REALM  - Credentials
    CACHE_VERIFIER_SASL_MECHANISM / _SASL_QOP     - Negotiation parameters
    CACHE_VERIFIER_EVICTION_MAX_ITERATIONS        - Default eviction bound
    CACHE_VERIFIER_DEBUG                          - Enable debug mode (true/false)
"""

import argparse
import asyncio
import logging
import sys
from typing import List, Optional

from .config.settings import settings
from .errors import CacheVerifierError
from .session.factory import SessionFactory
from .verifier.endpoint import EndpointVerifier

logger = logging.getLogger(__name__)

CHECKS = ("basic", "protected", "types", "sustained", "topology", "nodes", "eviction")


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Verify a remote key/value cache endpoint",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )

    parser.add_argument("check", choices=CHECKS, help="Check to run")
    parser.add_argument("--url", required=True, help="Endpoint URL (host:port)")
    parser.add_argument(
        "--service-name",
        required=True,
        help="Logical service name (TLS identity and trust store key)",
    )
    parser.add_argument(
        "--trust-store-dir",
        required=True,
        help="Directory containing per-service trust material",
    )
    parser.add_argument(
        "--duration",
        type=float,
        default=10.0,
        help="Seconds to run the sustained write check",
    )
    parser.add_argument(
        "--expected-address",
        action="append",
        default=[],
        help="Expected member host for the topology check (repeatable)",
    )
    parser.add_argument(
        "--max-iterations",
        type=int,
        default=settings.EVICTION_MAX_ITERATIONS,
        help="Writes allowed before giving up on eviction",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        default=settings.DEBUG,
        help="Enable debug logging",
    )

    return parser.parse_args(argv)


def setup_logging(debug: bool = False) -> None:
    """Configure logging based on debug flag."""
    level = logging.DEBUG if debug else getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)

    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.StreamHandler(sys.stdout),
        ]
    )


async def run_check(verifier: EndpointVerifier, args: argparse.Namespace) -> None:
    """Dispatch the selected check."""
    if args.check == "basic":
        await verifier.basic_capability(args.url)
    elif args.check == "protected":
        await verifier.verify_endpoint_protected(args.url)
    elif args.check == "types":
        await verifier.type_coverage(args.url)
    elif args.check == "sustained":
        await verifier.sustained_write(args.url, args.duration)
    elif args.check == "topology":
        await verifier.topology_membership(args.url, args.expected_address)
    elif args.check == "nodes":
        count = await verifier.node_count(args.url)
        print(count)
    elif args.check == "eviction":
        await verifier.eviction_boundary(args.url, max_iterations=args.max_iterations)


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point. Returns the process exit status."""
    args = parse_args(argv)
    setup_logging(debug=args.debug)

    try:
        factory = SessionFactory(args.service_name, args.trust_store_dir)
        asyncio.run(run_check(EndpointVerifier(factory), args))
    except CacheVerifierError as e:
        logger.error(f"Check '{args.check}' failed: {e}")
        return 1
    except KeyboardInterrupt:
        logger.info("Keyboard interrupt received")
        return 1

    logger.info(f"Check '{args.check}' passed")
    return 0


if __name__ == "__main__":
    sys.exit(main())
