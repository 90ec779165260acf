# test/winreghive/test_hive_integration/conftest.py

import pytest
import sys
import logging

from winreghive.hive import Hive, set_backend
from winreghive.registry_errors import RegistryError, RegistryKeyNotFoundError

# Configure logging for cleanup warnings
logging.basicConfig(level=logging.WARNING)
log = logging.getLogger(__name__)

# --- Constants ---
INTEGRATION_TEST_BASE_PATH = r"Software\winreghivetests_integration"  # Use a distinct name


def _cleanup(base_path: str) -> None:
    """Remove everything the integration tests may have left behind."""
    try:
        Hive.CURRENT_USER.delete(base_path, is_recursive=True)
        log.debug(f"Removed HKCU\\{base_path}")
    except RegistryKeyNotFoundError:
        log.debug(f"HKCU\\{base_path} not found, nothing to clean up.")
    except RegistryError as e:
        log.warning(f"Could not remove HKCU\\{base_path}: {e}. Manual cleanup might be needed.")


@pytest.fixture(scope="session")
def real_registry_test_key_base():
    """
    Provides the real Windows Registry under a dedicated test key
    (HKCU\\Software\\winreghivetests_integration).

    Uses the default winreg backend, verifies that a key can be created and
    removed, and cleans up before and after the session.
    """
    if sys.platform != "win32":
        pytest.skip("Windows Registry integration tests require Windows.")

    previous = set_backend(None)  # default WinregBackend
    base_path = INTEGRATION_TEST_BASE_PATH

    _cleanup(base_path)

    try:
        with Hive.CURRENT_USER.create(base_path):
            pass
        log.info(f"Registry access verified under HKCU\\{base_path}")
    except Exception as e:
        log.error(f"FATAL: Initial registry verification failed under HKCU\\{base_path}: {e}", exc_info=True)
        set_backend(previous)
        pytest.fail(f"Registry verification failed under HKCU\\{base_path}. Cannot proceed with integration tests. Error: {e}")

    yield base_path

    log.info(f"Performing final cleanup for HKCU\\{base_path}")
    _cleanup(base_path)
    set_backend(previous)
