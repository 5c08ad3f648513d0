"""One-shot privilege dropping, run after binding and before serving."""

import grp
import os
import pwd
from typing import Optional

from gemserve.domain.correlation_id import get_logger
from gemserve.domain.errors import ConfigError

PRIVILEGE_LOGGER = get_logger("gemserve.privileges")


def drop_privileges(user: Optional[str], group: Optional[str]) -> None:
    """Switch to the given group and user; no-op when neither is set."""
    if not user and not group:
        return

    try:
        gid = grp.getgrnam(group).gr_gid if group else None
        passwd = pwd.getpwnam(user) if user else None
    except KeyError as exc:
        raise ConfigError(f"unknown user or group: {exc}") from exc

    if gid is None and passwd is not None:
        gid = passwd.pw_gid

    try:
        if gid is not None:
            os.setgroups([])
            os.setgid(gid)
        if passwd is not None:
            os.setuid(passwd.pw_uid)
    except PermissionError as exc:
        raise ConfigError(f"could not drop privileges: {exc}") from exc

    PRIVILEGE_LOGGER.info(
        "Privileges dropped",
        extra={"event": "privileges_dropped", "user": user, "group": group},
    )
