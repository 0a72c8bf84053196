import logging
import os
import platform
import stat
import tempfile
from typing import Tuple

from . import config

logger = logging.getLogger(__name__)

if platform.system() == "Windows":
    try:
        import ntsecuritycon
        import win32api
        import win32security
        WINDOWS_SECURITY_AVAILABLE = True
    except ImportError:
        logger.warning("pywin32 is not installed, vault files keep their inherited Windows ACLs.")
        WINDOWS_SECURITY_AVAILABLE = False
else:
    WINDOWS_SECURITY_AVAILABLE = False


def _set_windows_file_permissions(filepath: str) -> bool:
    """
    Replace the DACL of ``filepath`` with a single entry for the current
    user and stop inheriting entries from the parent directory.
    """
    if not WINDOWS_SECURITY_AVAILABLE:
        return False

    try:
        user_sid, _, _ = win32security.LookupAccountName(None, win32api.GetUserName())
        dacl = win32security.ACL()
        dacl.AddAccessAllowedAce(
            win32security.ACL_REVISION,
            ntsecuritycon.FILE_GENERIC_READ | ntsecuritycon.FILE_GENERIC_WRITE | ntsecuritycon.DELETE,
            user_sid,
        )
        win32security.SetNamedSecurityInfo(
            filepath,
            win32security.SE_FILE_OBJECT,
            win32security.DACL_SECURITY_INFORMATION | win32security.PROTECTED_DACL_SECURITY_INFORMATION,
            None, None, dacl, None,
        )
    except win32api.error as e:
        logger.error(f"Failed to restrict Windows ACL of {filepath}: {e}")
        return False
    return True


def set_owner_only_permissions(filepath: str) -> bool:
    """Make a file readable and writable by its owner only."""
    if platform.system() == 'Windows':
        return _set_windows_file_permissions(filepath)
    os.chmod(filepath, stat.S_IRUSR | stat.S_IWUSR)  # 600
    return True


def make_temp_sibling(filepath: str) -> Tuple[int, str]:
    """
    Create a uniquely named temp file next to ``filepath``.

    Returns the open descriptor and the path. The file is created
    readable and writable by its owner only, and parent directories are
    created as needed.
    """
    filepath = os.fspath(filepath)
    parent = os.path.dirname(filepath) or os.curdir
    os.makedirs(parent, exist_ok=True)
    return tempfile.mkstemp(dir=parent, prefix=os.path.basename(filepath) + '.',
                            suffix=config.TEMP_FILE_SUFFIX)


def discard_temp_file(tmp_path: str) -> None:
    try:
        os.remove(tmp_path)
    except FileNotFoundError:
        pass


def atomic_write(filepath: str, data: bytes, private: bool = True) -> None:
    """
    Replace ``filepath`` with ``data`` in one step.

    The bytes go to a temp file of their own in the same directory, which
    is flushed and then renamed over the target, so readers see either the
    old file or the new one. Concurrent writers never share a temp file.
    On failure only this call's temp file is removed and the target is
    left as it was.
    """
    filepath = os.fspath(filepath)
    fd, tmp_path = make_temp_sibling(filepath)
    try:
        with os.fdopen(fd, 'wb') as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        if private and not set_owner_only_permissions(tmp_path):
            logger.warning(f"Failed to set secure file permissions for {filepath}.")
        os.replace(tmp_path, filepath)
    except OSError:
        logger.error(f"Error writing file {filepath}", exc_info=True)
        discard_temp_file(tmp_path)
        raise
