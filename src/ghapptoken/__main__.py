import argparse
import asyncio
import os
import sys

from dotenv import load_dotenv

from ghapptoken.core.config_models import TaskInputs, resolve_credentials
from ghapptoken.core.constants import __version__
from ghapptoken.core.errors import GithubError
from ghapptoken.core.logging import get_logger, setup_logging
from ghapptoken.github.auth import create_identity_jwt
from ghapptoken.github.client.github_client import GitHubClient
from ghapptoken.github.client.proxy import ProxyConfig
from ghapptoken.github.installations import InstallationResolver
from ghapptoken.tasks.post import run_post
from ghapptoken.tasks.run import run


async def list_installations() -> None:
    """Print every installation of the GitHub App."""
    logger = get_logger("installations")
    credentials = resolve_credentials(TaskInputs.from_environment(), logger=logger)
    proxy = ProxyConfig.from_environment(credentials.base_url, log=logger)
    client = GitHubClient(base_url=credentials.base_url, proxy=proxy, logger=get_logger("http"))
    resolver = InstallationResolver(client=client, app_id=credentials.identity.app_id, logger=logger)

    app_jwt = create_identity_jwt(credentials.identity)
    installations = [
        installation
        async for page in resolver.iter_installations(app_jwt)
        for installation in page
    ]

    if not installations:
        print("No installations found.")
        return

    print(f"Found {len(installations)} installation(s):\n")
    print("-" * 60)

    for installation in installations:
        account = installation.account
        account_type = installation.target_type or (account.type if account else None) or "Unknown"
        print(f"  {account_type}: {(account.handle if account else '') or 'Unknown'}")
        print(f"  Installation ID: {installation.id}")
        print(f"  Created: {installation.created_at or 'Unknown'}")
        if installation.repository_selection == "all":
            print("  Repos: All repositories")
        else:
            print("  Repos: Selected repositories only")
        print("-" * 60)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="ghapptoken",
        description="Mint and revoke GitHub App installation access tokens in a pipeline job.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    subcommands = parser.add_subparsers(dest="command", required=True)
    subcommands.add_parser("run", help="create an installation token (main step)")
    subcommands.add_parser("post", help="revoke the token created by the main step")
    subcommands.add_parser("installations", help="list every installation of the app")
    args = parser.parse_args(argv)

    load_dotenv()
    setup_logging(debug=os.getenv("SYSTEM_DEBUG", "false").lower() == "true")

    if args.command == "run":
        return run()
    if args.command == "post":
        return run_post()

    try:
        asyncio.run(list_installations())
    except GithubError as error:
        get_logger().error(str(error))
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
