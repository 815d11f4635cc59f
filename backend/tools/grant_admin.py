"""Grant the "admin" label to a user from the command line.

Why:
    Operators sometimes need to promote the first administrator before any
    admin UI exists. This tool runs the same use case as the web endpoint, so
    validation, idempotence and error classification are identical.

Usage:
    python -m backend.tools.grant_admin USER_ID \
      --endpoint https://cloud.appwrite.io/v1 \
      --project my-project \
      --api-key '...'

Options override the environment read by the web app (APPWRITE_ENDPOINT or
APPWRITE_FUNCTION_API_ENDPOINT, APPWRITE_FUNCTION_PROJECT_ID or
APPWRITE_PROJECT_ID, APPWRITE_API_KEY, APPWRITE_TIMEOUT_SECONDS,
APPWRITE_SELF_SIGNED, LOG_USER_COUNT). The result body is printed as JSON; the
exit code is 0 on success and 1 otherwise.

Notes:
    - Idempotent: running it again for an admin user performs no write.
"""

from __future__ import annotations

from typing import Optional
import json
import logging
import os

import click

from backend.identity_access.appwrite_users import AppwriteUsersClient
from backend.identity_access.domain import GRANT_ACTION
from backend.identity_access.usecases import GrantAdminInput, GrantAdminUseCase
from backend.web.config import ConfigurationError, load_store_config

logger = logging.getLogger("labelgrant.tools.grant_admin")


@click.command()
@click.argument("user_id")
@click.option("--endpoint", default=None, help="Appwrite API endpoint, e.g. https://host/v1 [env: APPWRITE_ENDPOINT]")
@click.option("--project", "project_id", default=None, help="Appwrite project id [env: APPWRITE_FUNCTION_PROJECT_ID]")
@click.option("--api-key", default=None, help="Server API key with users.read/users.write [env: APPWRITE_API_KEY]")
@click.option("--timeout", type=float, default=None, help="HTTP timeout in seconds [env: APPWRITE_TIMEOUT_SECONDS, default 5]")
@click.option("--self-signed", is_flag=True, help="Accept self-signed TLS certificates [env: APPWRITE_SELF_SIGNED]")
@click.option("--log-user-count", is_flag=True, help="Log the project's user count first [env: LOG_USER_COUNT]")
def main(
    user_id: str,
    endpoint: Optional[str],
    project_id: Optional[str],
    api_key: Optional[str],
    timeout: Optional[float],
    self_signed: bool,
    log_user_count: bool,
) -> None:
    logging.basicConfig(level=logging.INFO, format="%(levelname)s:%(name)s:%(message)s")
    if not user_id.strip():
        raise click.BadParameter("USER_ID must not be empty", param_hint="USER_ID")
    if timeout is not None and timeout <= 0:
        raise click.BadParameter("must be positive", param_hint="--timeout")

    env = dict(os.environ)
    overrides = {
        "APPWRITE_ENDPOINT": endpoint,
        "APPWRITE_FUNCTION_PROJECT_ID": project_id,
        "APPWRITE_API_KEY": api_key,
        "APPWRITE_TIMEOUT_SECONDS": str(timeout) if timeout is not None else None,
        "APPWRITE_SELF_SIGNED": "true" if self_signed else None,
        "LOG_USER_COUNT": "true" if log_user_count else None,
    }
    env.update({k: v for k, v in overrides.items() if v})
    try:
        cfg = load_store_config(env)
    except ConfigurationError as exc:
        raise click.UsageError(str(exc))

    client = AppwriteUsersClient(cfg)
    counter = client.count_users if cfg.log_user_count else None
    use_case = GrantAdminUseCase(client, user_counter=counter)
    result = use_case.execute(GrantAdminInput(user_id=user_id.strip(), action=GRANT_ACTION))
    click.echo(json.dumps(result.body, indent=2))
    if not result.success:
        raise SystemExit(1)


if __name__ == "__main__":  # pragma: no cover
    main()
