"""efistubmgr: dracut EFI stub builder and firmware boot entry manager.

Builds one unified kernel image per configured profile from the newest
matching installed kernel, then reconciles the firmware boot entries it owns
so that they point at exactly those images, in profile order.
"""

__version__ = "0.1.0"
__description__ = "Build dracut EFI stubs and keep firmware boot entries in sync"

from efistubmgr.core.coordinator import RunCoordinator
from efistubmgr.core.registry import ProfileRegistry
from efistubmgr.cli.app import app as cli

__all__ = ["RunCoordinator", "ProfileRegistry", "cli", "__version__"]
