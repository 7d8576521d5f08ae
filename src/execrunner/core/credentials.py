"""Credential switching used by the POSIX spawner inside the forked child."""

import os
from typing import Protocol


class CredentialSwitcher(Protocol):
    """Changes the identity of the current process."""

    def change_group(self, gid: int, permanently: bool = False) -> None: ...

    def change_user(self, uid: int, permanently: bool = False) -> None: ...


class PosixCredentialSwitcher:
    """Switch group and user with setgid/setuid.

    Permanent switches set real, effective and saved ids so the process cannot
    regain its previous identity. Temporary switches only touch the effective id.
    """

    def change_group(self, gid: int, permanently: bool = False) -> None:
        if permanently:
            # Drop supplementary groups too, otherwise they survive the switch
            if os.geteuid() == 0:
                os.setgroups([gid])
            os.setgid(gid)
        else:
            os.setegid(gid)

    def change_user(self, uid: int, permanently: bool = False) -> None:
        if permanently:
            os.setuid(uid)
        else:
            os.seteuid(uid)
