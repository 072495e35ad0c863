#!/usr/bin/env python3
"""
Command-line interface for the restock alerts service.

Usage:
    python cli.py [command] [options]

Commands:
    products        Browse a catalog view, optionally filtered
    subscribe       Get notified when a product is back in stock
    unsubscribe     Stop notifications for a product
    forget          Remove a product from the local list only
    subscriptions   List local subscriptions and statistics
    clear           Clear local subscriptions (optionally upstream too)
    serve           Start the gateway API server
    test            Run the test suite

Examples:
    python cli.py products --view available --search milk
    python cli.py subscribe "High Protein Milk" --email you@example.com
    python cli.py unsubscribe "High Protein Milk"
    python cli.py clear --remote
    python cli.py serve --reload

Configuration comes from RESTOCK_* environment variables (see shared/config.py).
"""

import argparse
import asyncio
import subprocess
import sys
from typing import Awaitable, Callable, Optional

from gateway.catalog_proxy import CatalogProxy
from gateway.notification_gateway import NotificationGateway
from gateway.transport import HttpTransport
from shared.config import Settings, configure_logging
from shared.data_store import open_storage
from shared.subscription_store import PersistentSubscriptionStore
from subscriptions.catalog_view import ProductCard
from subscriptions.controller import AppController


def build_controller(settings: Settings, transport: HttpTransport) -> AppController:
    """Wire the controller against the configured service and storage file."""
    store = PersistentSubscriptionStore(open_storage(settings.storage_path))
    return AppController(
        store=store,
        catalog_proxy=CatalogProxy(transport),
        gateway=NotificationGateway(transport),
        verify_catalog=settings.verify_catalog,
    )


def run_with_controller(
    settings: Settings,
    action: Callable[[AppController], Awaitable[None]],
) -> int:
    """Run an action against a fresh controller and print its notices."""

    async def _run() -> int:
        transport = HttpTransport(settings.service_url, timeout=settings.request_timeout)
        controller = build_controller(settings, transport)
        try:
            controller.load_subscriptions()
            await action(controller)
        finally:
            await transport.close()

        for notice in controller.state.notices:
            print(notice)
        last = controller.state.last_notice
        return 1 if last is not None and last.is_error else 0

    return asyncio.run(_run())


def format_card(card: ProductCard) -> str:
    stock = "in stock" if card.in_stock else "out of stock"
    marker = " [subscribed]" if card.subscribed else ""
    return f"  {card.name:<48} ₹{card.product.price:<8g} {stock}{marker}"


def run_products(settings: Settings, view: str, search: str) -> int:
    """Print a catalog view."""

    async def action(controller: AppController) -> None:
        await controller.refresh_catalogs()
        controller.select_view(view)
        cards = controller.search(search)

        state = controller.state
        print(
            f"All Products ({len(state.all_products)}) | "
            f"Available ({len(state.available_products)}) | "
            f"{len(state.subscriptions)} Subscribed"
        )
        print("-" * 70)
        if not cards:
            print("No products found")
        for card in cards:
            print(format_card(card))
        print("-" * 70)

    return run_with_controller(settings, action)


def run_subscribe(settings: Settings, product: str, email: Optional[str]) -> int:
    async def action(controller: AppController) -> None:
        await controller.subscribe(product, email)

    return run_with_controller(settings, action)


def run_unsubscribe(settings: Settings, product: str, email: Optional[str]) -> int:
    async def action(controller: AppController) -> None:
        await controller.unsubscribe(product, email)

    return run_with_controller(settings, action)


def run_forget(settings: Settings, product: str) -> int:
    async def action(controller: AppController) -> None:
        await controller.forget(product)

    return run_with_controller(settings, action)


def run_subscriptions(settings: Settings) -> int:
    """Print local subscriptions, newest first, with statistics."""

    async def action(controller: AppController) -> None:
        records = controller.subscriptions_newest_first()
        if not records:
            print("No active subscriptions")
            return
        for record in records:
            subscribed = record.subscribed_at.astimezone().strftime("%Y-%m-%d at %H:%M:%S")
            print(f"  {record.product_name}")
            print(f"    {record.email} | Subscribed: {subscribed}")

        stats = controller.stats()
        print("-" * 70)
        print(f"Total subscriptions: {stats.total_subscriptions}")
        print(f"Unique emails: {stats.unique_emails}")
        for email, count in stats.email_breakdown.items():
            print(f"  {email}: {count}")

    return run_with_controller(settings, action)


def run_clear(settings: Settings, remote: bool) -> int:
    async def action(controller: AppController) -> None:
        if remote:
            await controller.unsubscribe_all()
        else:
            controller.clear_all()

    return run_with_controller(settings, action)


def run_tests(args: list[str]) -> int:
    """Run the test suite."""
    cmd = [sys.executable, "-m", "pytest"] + args
    return subprocess.run(cmd).returncode


def run_server(host: str, port: int, reload: bool) -> int:
    """Start the API server."""
    cmd = [sys.executable, "-m", "uvicorn", "api.main:app", f"--host={host}", f"--port={port}"]
    if reload:
        cmd.append("--reload")

    print(f"Starting server at http://{host}:{port}")
    print(f"API docs available at http://{host}:{port}/docs")
    return subprocess.run(cmd).returncode


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Restock Alerts CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s products --view available --search milk
  %(prog)s subscribe "High Protein Milk" --email you@example.com
  %(prog)s subscriptions
  %(prog)s clear --remote
  %(prog)s serve --reload
        """,
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    # Products command
    products_parser = subparsers.add_parser("products", help="Browse the catalog")
    products_parser.add_argument(
        "--view",
        choices=["all", "available"],
        default="all",
        help="Which catalog view to show",
    )
    products_parser.add_argument("--search", default="", help="Case-insensitive name filter")

    # Subscribe command
    subscribe_parser = subparsers.add_parser("subscribe", help="Notify me when a product is back")
    subscribe_parser.add_argument("product", help="Product name, exactly as listed")
    subscribe_parser.add_argument("--email", default=None, help="Email to notify (defaults to the last one used)")

    # Unsubscribe command
    unsubscribe_parser = subparsers.add_parser("unsubscribe", help="Stop notifications for a product")
    unsubscribe_parser.add_argument("product", help="Product name, exactly as listed")
    unsubscribe_parser.add_argument("--email", default=None, help="Email for products not tracked locally")

    # Forget command
    forget_parser = subparsers.add_parser("forget", help="Remove a product from the local list only")
    forget_parser.add_argument("product", help="Product name")

    # Subscriptions command
    subparsers.add_parser("subscriptions", help="List local subscriptions")

    # Clear command
    clear_parser = subparsers.add_parser("clear", help="Clear all local subscriptions")
    clear_parser.add_argument(
        "--remote",
        action="store_true",
        help="Unsubscribe upstream first; only confirmed products are removed",
    )

    # Test command
    test_parser = subparsers.add_parser("test", help="Run the test suite")
    test_parser.add_argument(
        "pytest_args",
        nargs="*",
        default=[],
        help="Arguments to pass to pytest",
    )

    # Serve command
    serve_parser = subparsers.add_parser("serve", help="Start the API server")
    serve_parser.add_argument("--host", default="127.0.0.1", help="Host to bind to")
    serve_parser.add_argument("--port", type=int, default=8000, help="Port to bind to")
    serve_parser.add_argument("--reload", action="store_true", help="Enable auto-reload")

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    settings = Settings.from_env()
    configure_logging(settings.log_level)

    if args.command == "products":
        return run_products(settings, args.view, args.search)
    elif args.command == "subscribe":
        return run_subscribe(settings, args.product, args.email)
    elif args.command == "unsubscribe":
        return run_unsubscribe(settings, args.product, args.email)
    elif args.command == "forget":
        return run_forget(settings, args.product)
    elif args.command == "subscriptions":
        return run_subscriptions(settings)
    elif args.command == "clear":
        return run_clear(settings, args.remote)
    elif args.command == "test":
        return run_tests(args.pytest_args)
    elif args.command == "serve":
        return run_server(args.host, args.port, args.reload)
    else:
        parser.print_help()
        return 0


if __name__ == "__main__":
    sys.exit(main())
