"""
Command-line client for Calorie Vision.

Usage:
    calorie-vision signup --name Ann --email a@x.com
    calorie-vision login --email a@x.com
    calorie-vision analyze meal.jpg
    calorie-vision history [--cached]
    calorie-vision status
    calorie-vision endpoint [URL | --reset]
    calorie-vision logout
"""

import argparse
import asyncio
import getpass
import logging
import sys
from collections.abc import Awaitable, Callable
from pathlib import Path

from calorie_vision.app_logging import configure_logging
from calorie_vision.config import Settings
from calorie_vision.containers import build_container
from calorie_vision.controller import AppController, Mode
from calorie_vision.domain.connectivity import ConnectivityStatus
from calorie_vision.domain.meals import MealRecord

Command = Callable[[AppController, argparse.Namespace], Awaitable[int]]


def format_meal(meal: MealRecord) -> str:
    """Render one history row as a single line."""
    calories = f"{round(meal.calories)} kcal" if meal.calories else "- kcal"
    line = f"{meal.dish_name or 'Meal'}: {calories}"
    if meal.macros is not None:
        line += (
            f" (C {meal.macros.carbs_g:g} / P {meal.macros.protein_g:g}"
            f" / F {meal.macros.fat_g:g})"
        )
    if meal.ingredients:
        line += f" [{', '.join(meal.ingredients)}]"
    return line


def _print_meals(meals: list[MealRecord]) -> None:
    if not meals:
        print("No meals yet. Start by taking a photo.")
        return
    for meal in meals:
        print(format_meal(meal))


async def cmd_signup(controller: AppController, args: argparse.Namespace) -> int:
    """Create an account and sign in."""
    controller.set_mode(Mode.SIGNUP)
    return await _authenticate(controller, args, name=args.name)


async def cmd_login(controller: AppController, args: argparse.Namespace) -> int:
    """Sign in with existing credentials."""
    controller.set_mode(Mode.LOGIN)
    return await _authenticate(controller, args)


async def _authenticate(
    controller: AppController, args: argparse.Namespace, name: str | None = None
) -> int:
    if controller.state.user is not None:
        print(f"Already logged in as {controller.state.user.email}; log out first.")
        return 1
    password = args.password or getpass.getpass("Password: ")
    if not await controller.submit_auth(args.email, password, name=name):
        print(f"Error: {controller.state.message}")
        return 1
    user = controller.state.user
    print(f"Logged in as {user.name or user.email} ({user.user_id})")
    _print_meals(controller.state.meals)
    return 0


async def cmd_logout(controller: AppController, args: argparse.Namespace) -> int:
    """Forget the stored session."""
    controller.logout()
    print("Logged out")
    return 0


async def cmd_analyze(controller: AppController, args: argparse.Namespace) -> int:
    """Upload a meal photo for analysis."""
    image_path = Path(args.image)
    if not image_path.is_file():
        print(f"Error: Image not found: {image_path}")
        return 1
    meal = await controller.analyze(image_path.read_bytes(), filename=image_path.name)
    if meal is None:
        print(f"Error: {controller.state.message}")
        return 1
    print(controller.state.message)
    print(format_meal(meal))
    return 0


async def cmd_history(controller: AppController, args: argparse.Namespace) -> int:
    """Show recent meals, refreshing from the backend unless --cached."""
    if controller.state.user is None:
        print("Error: Please log in first")
        return 1
    if not args.cached:
        outcome = await controller.refresh_history()
        if outcome is not None and not outcome.ok:
            print(f"Showing cached meals ({outcome.error})")
    _print_meals(controller.state.meals)
    return 0


async def cmd_status(controller: AppController, args: argparse.Namespace) -> int:
    """Show endpoint, session and backend reachability."""
    endpoint = controller.state.endpoint
    if endpoint is not None:
        insecure = " (insecure)" if endpoint.insecure else ""
        print(f"Backend: {endpoint.resolved_url} [{endpoint.source}]{insecure}")
    user = controller.state.user
    print(f"Session: {(user.email or user.user_id) if user else 'logged out'}")
    state = await controller.probe()
    if state.status == ConnectivityStatus.REACHABLE:
        print("Connectivity: reachable")
        return 0
    print(f"Connectivity: {state.status} ({state.detail})")
    return 1


async def cmd_endpoint(controller: AppController, args: argparse.Namespace) -> int:
    """Show, set or reset the backend URL override."""
    if args.reset:
        await controller.reset_endpoint()
    elif args.url is not None:
        if not await controller.change_endpoint(args.url):
            print(f"Error: {controller.state.message}")
            return 1
    endpoint = controller.state.endpoint
    if endpoint is not None:
        print(f"Backend: {endpoint.resolved_url} [{endpoint.source}]")
    return 0


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for all subcommands."""
    parser = argparse.ArgumentParser(
        prog="calorie-vision",
        description="Snap your meal. Know your calories.",
    )
    parser.add_argument(
        "--data-path",
        help="SQLite file holding the session and cached meals",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    signup_parser = subparsers.add_parser("signup", help="Create an account")
    signup_parser.add_argument("--name", required=True)
    signup_parser.add_argument("--email", required=True)
    signup_parser.add_argument("--password", help="Prompted when omitted")

    login_parser = subparsers.add_parser("login", help="Log in")
    login_parser.add_argument("--email", required=True)
    login_parser.add_argument("--password", help="Prompted when omitted")

    subparsers.add_parser("logout", help="Log out")

    analyze_parser = subparsers.add_parser("analyze", help="Analyze a meal photo")
    analyze_parser.add_argument("image", help="Path to the photo")

    history_parser = subparsers.add_parser("history", help="Show recent meals")
    history_parser.add_argument(
        "--cached",
        action="store_true",
        help="Do not contact the backend",
    )

    subparsers.add_parser("status", help="Probe backend connectivity")

    endpoint_parser = subparsers.add_parser("endpoint", help="Backend URL override")
    endpoint_parser.add_argument("url", nargs="?", help="New backend URL")
    endpoint_parser.add_argument(
        "--reset",
        action="store_true",
        help="Remove the override",
    )
    return parser


COMMANDS: dict[str, Command] = {
    "signup": cmd_signup,
    "login": cmd_login,
    "logout": cmd_logout,
    "analyze": cmd_analyze,
    "history": cmd_history,
    "status": cmd_status,
    "endpoint": cmd_endpoint,
}


async def run(controller: AppController, args: argparse.Namespace) -> int:
    """Restore the session and dispatch one command."""
    try:
        controller.restore_session()
        return await COMMANDS[args.command](controller, args)
    finally:
        await controller.shutdown()


def main(argv: list[str] | None = None) -> int:
    """CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    configure_logging(level=logging.DEBUG if args.verbose else logging.WARNING)
    settings = Settings()
    if args.data_path:
        settings = settings.model_copy(update={"data_path": Path(args.data_path)})
    controller = AppController(container=build_container(settings))
    return asyncio.run(run(controller, args))


if __name__ == "__main__":
    sys.exit(main())
