"""
Device management for touchscreen discovery and initialization.
"""

import logging
from typing import Any, Dict, Optional

import evdev
from evdev import ecodes

logger = logging.getLogger(__name__)


class DeviceManager:
    """Finds a multitouch device and reads its axis ranges."""

    def __init__(self):
        self.device = None
        self.screen_width = 1920  # Default
        self.screen_height = 1080  # Default
        self.max_pressure: Optional[int] = None

    def find_device(self):
        """Find and configure the touchscreen device."""
        devices = [evdev.InputDevice(path) for path in evdev.list_devices()]

        for device in devices:
            abs_info = self.multitouch_axes(device.capabilities())
            if abs_info is None:
                continue

            if ecodes.ABS_MT_POSITION_X in abs_info:
                self.screen_width = abs_info[ecodes.ABS_MT_POSITION_X].max + 1
            if ecodes.ABS_MT_POSITION_Y in abs_info:
                self.screen_height = abs_info[ecodes.ABS_MT_POSITION_Y].max + 1
            if ecodes.ABS_MT_PRESSURE in abs_info:
                self.max_pressure = abs_info[ecodes.ABS_MT_PRESSURE].max

            self.device = device
            logger.info("Found touchscreen: %s", device.name)
            logger.info("Screen resolution: %dx%d", self.screen_width, self.screen_height)
            return device

        logger.error("No touchscreen device found")
        return None

    @staticmethod
    def multitouch_axes(capabilities: Dict[int, Any]) -> Optional[Dict[int, Any]]:
        """Map of ABS code -> AbsInfo for protocol B devices, else None."""
        abs_caps = capabilities.get(ecodes.EV_ABS, [])
        abs_info = {code: info for code, info in abs_caps}
        if ecodes.ABS_MT_SLOT not in abs_info:
            return None
        return abs_info

    def get_device_info(self) -> Dict[str, Any]:
        """Get device and screen information."""
        return {
            'device': self.device,
            'screen_width': self.screen_width,
            'screen_height': self.screen_height,
            'max_pressure': self.max_pressure,
        }
