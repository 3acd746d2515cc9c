"""Emulator detection for the deferred deep link gate.

The host supplies its build properties; detection itself is pure so it can be
tested without a device.
"""

from pydantic import BaseModel


class DeviceInfo(BaseModel):
    """Build properties reported by the host device."""

    fingerprint: str = ""
    model: str = ""
    manufacturer: str = ""
    brand: str = ""
    device: str = ""
    product: str = ""

    def is_emulator(self) -> bool:
        return (
            self.fingerprint.startswith("generic")
            or self.fingerprint.startswith("unknown")
            or "google_sdk" in self.model
            or "Emulator" in self.model
            or "Android SDK built for x86" in self.model
            or "Genymotion" in self.manufacturer
            or (self.brand.startswith("generic") and self.device.startswith("generic"))
            or self.product == "google_sdk"
        )
