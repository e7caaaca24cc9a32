"""
File-system helpers for THE VAULT.
"""
import platform
import os
import stat
import logging

logger = logging.getLogger(__name__)

if platform.system() == "Windows":
    try:
        import win32security
        import win32api
        import win32con
        import win32file
        WINDOWS_SECURITY_AVAILABLE = True
    except ImportError:
        logger.warning("pywin32 not fully installed, preferences file permissions cannot be restricted.")
        WINDOWS_SECURITY_AVAILABLE = False
else:
    WINDOWS_SECURITY_AVAILABLE = False


def set_owner_only_permissions(filepath: str) -> bool:
    """
    Make a file readable and writable by its owner only.

    On POSIX this is mode 600. On Windows the file gets a protected DACL
    with a single read/write entry for the current account, which drops
    inherited access for everyone else.

    Returns:
        True if the restriction was applied
    """
    if platform.system() != 'Windows':
        os.chmod(filepath, stat.S_IRUSR | stat.S_IWUSR)
        return True

    if not WINDOWS_SECURITY_AVAILABLE:
        logger.warning(f"Leaving default permissions on {filepath}: pywin32 not available.")
        return False

    try:
        owner_sid = win32security.LookupAccountName(None, win32api.GetUserName())[0]
        owner_only = win32security.ACL()
        owner_only.AddAccessAllowedAce(
            win32security.ACL_REVISION,
            win32con.GENERIC_READ | win32con.GENERIC_WRITE,
            owner_sid
        )

        handle = win32file.CreateFile(
            filepath,
            win32con.WRITE_DAC,
            win32file.FILE_SHARE_READ | win32file.FILE_SHARE_WRITE | win32file.FILE_SHARE_DELETE,
            None,
            win32con.OPEN_EXISTING,
            win32con.FILE_ATTRIBUTE_NORMAL,
            None
        )
        try:
            win32security.SetSecurityInfo(
                handle,
                win32security.SE_FILE_OBJECT,
                win32security.DACL_SECURITY_INFORMATION | win32security.PROTECTED_DACL_SECURITY_INFORMATION,
                None, None, owner_only, None
            )
        finally:
            win32file.CloseHandle(handle)
    except win32api.error as e:
        logger.warning(f"Could not restrict {filepath} to its owner (winerror {e.winerror}); it stays readable by other accounts.")
        return False

    logger.debug(f"Restricted {filepath} to its owner.")
    return True
