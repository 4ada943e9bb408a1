"""Selenium standalone browser container with optional screen recording."""

from __future__ import annotations

import logging
import tempfile
import time
from pathlib import Path
from typing import Callable, Optional

from browser_containers.containers.generic import GenericContainer
from browser_containers.containers.runtime import ContainerRuntime
from browser_containers.containers.wait import (
    HostPortWaitStrategy,
    LogMessageWaitStrategy,
    WaitAllStrategy,
    WaitStrategy,
)
from browser_containers.errors import ContainerLaunchError
from browser_containers.images.resolver import DockerImageCheck, ImageValidator
from browser_containers.models.config import BrowserContainerSettings, RecordingMode
from browser_containers.models.image import ImageReference
from browser_containers.models.recording import RecordingOutcome
from browser_containers.recorder.base import RecordingContainer
from browser_containers.recorder.naming import (
    DefaultTestRecordingFileNameFactory,
    TestRecordingFileNameFactory,
)
from browser_containers.recorder.selenium_video import SeleniumRecordingContainer
from browser_containers.utils.timeouts import get_with_timeout

logger = logging.getLogger(__name__)

SELENIUM_PORT = 4444
VNC_PORT = 5900
NO_VNC_PORT = 7900

DEFAULT_VNC_PASSWORD = "secret"

ENTRY_POINT = "/opt/bin/entry_point.sh"
SHM_SIZE_BYTES = 520_000_000
STARTUP_ATTEMPTS = 3
STARTUP_TIMEOUT_SECONDS = 60
TEMP_DIR_PREFIX = "tc"

RecordingContainerSupplier = Callable[["BrowserWebDriverContainer"], RecordingContainer]


class BrowserWebDriverContainer(GenericContainer):
    """A chrome/firefox/edge container from SeleniumHQ's standalone images.

    Lifecycle:
        configure()  -> recording sidecar, timezone, shm, ports, image validation
        start()      -> browser up, then the sidecar (unless started manually)
        after_test() -> keep or drop the recording of the finished test
        stop()       -> sidecar first (best effort), then the browser
    """

    def __init__(
        self,
        image: str | ImageReference,
        settings: Optional[BrowserContainerSettings] = None,
        runtime: Optional[ContainerRuntime] = None,
    ):
        super().__init__(image, runtime=runtime)
        self.settings = settings.model_copy(deep=True) if settings else BrowserContainerSettings()
        self.recording_container_supplier: RecordingContainerSupplier = SeleniumRecordingContainer
        self.recording_container: Optional[RecordingContainer] = None
        self.test_recording_file_name_factory: TestRecordingFileNameFactory = (
            DefaultTestRecordingFileNameFactory()
        )
        self.wait_strategy = self.default_wait_strategy()

    @staticmethod
    def default_wait_strategy() -> WaitStrategy:
        return WaitAllStrategy(
            LogMessageWaitStrategy(
                r".*(Started Selenium Standalone).*",
                startup_timeout_seconds=STARTUP_TIMEOUT_SECONDS,
            ),
            HostPortWaitStrategy(startup_timeout_seconds=STARTUP_TIMEOUT_SECONDS),
            startup_timeout_seconds=STARTUP_TIMEOUT_SECONDS,
        )

    # region Config
    def with_map_timezone_into_container(self, enabled: bool) -> "BrowserWebDriverContainer":
        self.settings.map_timezone_into_container = enabled
        return self

    def with_validate_image(self, enabled: bool) -> "BrowserWebDriverContainer":
        self.settings.validate_image = enabled
        return self

    def with_validate_image_get_timeout(self, seconds: float) -> "BrowserWebDriverContainer":
        self.settings.validate_image_get_timeout_seconds = seconds
        return self

    def with_disable_vnc(self, disabled: bool) -> "BrowserWebDriverContainer":
        self.settings.disable_vnc = disabled
        return self

    def with_expose_vnc_port(self, enabled: bool) -> "BrowserWebDriverContainer":
        self.settings.expose_vnc_port = enabled
        return self

    def with_enable_no_vnc(self, enabled: bool) -> "BrowserWebDriverContainer":
        self.settings.enable_no_vnc = enabled
        return self

    def with_recording_container_supplier(
        self, supplier: RecordingContainerSupplier
    ) -> "BrowserWebDriverContainer":
        self.recording_container_supplier = supplier
        return self

    def with_start_recording_container_manually(self, manually: bool) -> "BrowserWebDriverContainer":
        self.settings.start_recording_container_manually = manually
        return self

    def with_recording_mode(self, mode: RecordingMode | str) -> "BrowserWebDriverContainer":
        self.settings.recording_mode = RecordingMode(mode)
        return self

    def with_recording_directory(self, directory: Path | str) -> "BrowserWebDriverContainer":
        self.settings.recording_directory = Path(directory)
        return self

    def with_test_recording_file_name_factory(
        self, factory: TestRecordingFileNameFactory
    ) -> "BrowserWebDriverContainer":
        self.test_recording_file_name_factory = factory
        return self

    def with_recording_save_timeout(self, seconds: float) -> "BrowserWebDriverContainer":
        self.settings.recording_save_timeout_seconds = seconds
        return self

    def with_before_recording_save_wait_time(self, seconds: Optional[float]) -> "BrowserWebDriverContainer":
        self.settings.before_recording_save_wait_seconds = seconds
        return self
    # endregion

    def configure(self) -> None:
        self.configure_recording()
        self.configure_timezone()

        self.with_command(ENTRY_POINT)

        self.configure_shm()

        # Selenium browser images occasionally fail their first start
        self.with_startup_attempts(STARTUP_ATTEMPTS)

        self.with_exposed_ports(SELENIUM_PORT)
        self.configure_vnc()

        self.validate_image()

    def configure_recording(self) -> None:
        if self.settings.recording_mode is RecordingMode.SKIP:
            return

        if self.settings.recording_directory is None:
            try:
                self.settings.recording_directory = Path(tempfile.mkdtemp(prefix=TEMP_DIR_PREFIX))
            except OSError as e:
                raise ContainerLaunchError("Exception while trying to create temp directory") from e

        # Recorder and browser reach each other by container name
        if self.network is None:
            self.with_network(self.runtime.shared_network)

        self.recording_container = self.recording_container_supplier(self)

    def configure_timezone(self) -> None:
        if self.settings.map_timezone_into_container:
            self.with_env("TZ", self.runtime.timezone or "Etc/UTC")

    def configure_shm(self) -> None:
        # Browsers crash with docker's default 64MB /dev/shm
        if self.shm_size is not None:
            return
        if self.should_direct_mount_shm():
            self.with_bind("/dev/shm", "/dev/shm", "rw")
        else:
            self.with_shared_memory_size(SHM_SIZE_BYTES)

    def should_direct_mount_shm(self) -> bool:
        return not self.runtime.is_windows

    def configure_vnc(self) -> None:
        if self.settings.disable_vnc:
            self.with_env("SE_START_VNC", "false")
            return

        if self.settings.expose_vnc_port:
            self.with_exposed_ports(VNC_PORT)
        if self.settings.enable_no_vnc:
            self.with_exposed_ports(NO_VNC_PORT)

    # region Validate image
    def validate_image(self) -> None:
        if not self.settings.validate_image:
            return

        try:
            self.image_name = self.runtime.image_cache.compute_if_absent(
                self.requested_image, self.validate_image_or_pick_alternative
            )
        except Exception:
            logger.warning(
                "Failed to validate image or pick alternative; Using default %s",
                self.requested_image, exc_info=True,
            )

    def validate_image_or_pick_alternative(self, initial: ImageReference) -> str:
        validator = ImageValidator(
            DockerImageCheck(self.runtime.client),
            timeout_seconds=self.settings.validate_image_get_timeout_seconds,
        )
        return validator.validate_or_pick_alternative(initial)
    # endregion

    # region Endpoints
    @property
    def selenium_address(self) -> str:
        return f"http://{self.host}:{self.get_mapped_port(SELENIUM_PORT)}/wd/hub"

    @property
    def vnc_address(self) -> Optional[str]:
        if self.settings.disable_vnc or not self.settings.expose_vnc_port:
            return None
        return f"vnc://vnc:{DEFAULT_VNC_PASSWORD}@{self.host}:{self.get_mapped_port(VNC_PORT)}"

    @property
    def no_vnc_address_raw(self) -> Optional[str]:
        if self.settings.disable_vnc or not self.settings.enable_no_vnc:
            return None
        return f"http://{self.host}:{self.get_mapped_port(NO_VNC_PORT)}"

    @property
    def no_vnc_address(self) -> Optional[str]:
        base = self.no_vnc_address_raw
        if base is None:
            return None
        return f"{base}?autoconnect=true&password={DEFAULT_VNC_PASSWORD}"

    @property
    def container_name_cleaned(self) -> Optional[str]:
        name = self.container_name
        return name.replace("/", "") if name else None
    # endregion

    def stop(self, force: bool = True, delete_volume: bool = True) -> None:
        self.stop_recording_container()
        super().stop(force, delete_volume)

    # region Recording
    def after_test(self, test_name: str, succeeded: bool) -> Optional[RecordingOutcome]:
        """Test-finished notification from the test framework."""
        return self.retain_recording_if_needed(lambda: test_name, succeeded)

    def retain_recording_if_needed(
        self, test_name_supplier: Callable[[], str], succeeded: bool
    ) -> Optional[RecordingOutcome]:
        """Save the recording when the recording mode asks for it.

        Returns ``None`` when the recording is not retained. Failures while
        saving are logged and never raised.
        """
        if not self.settings.recording_mode.should_retain(succeeded):
            return None

        wait = self.settings.before_recording_save_wait_seconds

        if wait:
            # Let the recorder finish the current frame
            time.sleep(wait)

        test_name = test_name_supplier()
        outcome = RecordingOutcome(
            test_name=test_name, succeeded=succeeded,
            wait_before_save_seconds=wait,
            save_timeout_seconds=self.settings.recording_save_timeout_seconds,
        )
        if self.recording_container is None:
            logger.warning("No recording container configured; nothing to save for %s", test_name)
            return outcome

        recording_container = self.recording_container
        directory = self.settings.recording_directory
        name_factory = self.test_recording_file_name_factory
        try:
            file_name = name_factory.build_name_without_extension(test_name, succeeded)
            recording = get_with_timeout(
                lambda: recording_container.save_recording_to_file(directory, file_name),
                outcome.save_timeout_seconds,
            )
        except TimeoutError:
            logger.warning("Timed out while saving recording for test %s", test_name, exc_info=True)
            return outcome
        except Exception:
            logger.warning("Failed to save recording for test %s", test_name, exc_info=True)
            return outcome

        if recording is not None:
            outcome.recording_path = str(recording)
        logger.info("Screen recordings for test %s will be stored at: %s", test_name, recording)
        return outcome

    def container_is_started(self) -> None:
        if not self.settings.start_recording_container_manually:
            self.start_recording_container()

    def start_recording_container(self) -> None:
        if self.recording_container is not None:
            self.recording_container.start()

    def stop_recording_container(self) -> None:
        if self.recording_container is None:
            return
        try:
            self.recording_container.stop()
        except Exception:
            logger.warning("Failed to stop recording container", exc_info=True)
        self.recording_container = None
    # endregion
