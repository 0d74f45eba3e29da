# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Cross-check sandbox entitlements against their usage descriptions.

Every entitlement an app requests must be justified by a non-blank usage
description in the ``FairUsage`` dictionary of its Info.plist. Some
entitlements are never acceptable, and a few need no justification.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from enum import StrEnum
from typing import Any, Final

from pydantic import BaseModel, ConfigDict, Field

from .errors import (
    ForbiddenEntitlementError,
    MissingUsageDescriptionError,
    SandboxRequiredError,
)
from .plist import PropertyList

ENTITLEMENT_PREFIX: Final[str] = "com.apple.security."
DEFAULT_CATALOG_APP_NAMES: Final[tuple[str, ...]] = ("App-Fair",)


class AppEntitlement(StrEnum):
    """Entitlements in canonical order.

    Sandbox entitlements are stored without the ``com.apple.security.`` prefix;
    capability entitlements such as HealthKit carry their full key.
    """

    APP_SANDBOX = "app-sandbox"
    NETWORK_CLIENT = "network.client"
    NETWORK_SERVER = "network.server"
    CAMERA = "device.camera"
    MICROPHONE = "device.microphone"
    USB = "device.usb"
    PRINT = "print"
    BLUETOOTH = "device.bluetooth"
    AUDIO_VIDEO_BRIDGING = "device.audio-video-bridging"
    FIREWIRE = "device.firewire"
    SERIAL = "device.serial"
    AUDIO_INPUT = "device.audio-input"
    ADDRESSBOOK = "personal-information.addressbook"
    LOCATION = "personal-information.location"
    CALENDARS = "personal-information.calendars"
    FILES_USER_SELECTED_READ_ONLY = "files.user-selected.read-only"
    FILES_USER_SELECTED_READ_WRITE = "files.user-selected.read-write"
    FILES_USER_SELECTED_EXECUTABLE = "files.user-selected.executable"
    FILES_DOWNLOADS_READ_ONLY = "files.downloads.read-only"
    FILES_DOWNLOADS_READ_WRITE = "files.downloads.read-write"
    ASSETS_PICTURES_READ_ONLY = "assets.pictures.read-only"
    ASSETS_PICTURES_READ_WRITE = "assets.pictures.read-write"
    ASSETS_MUSIC_READ_ONLY = "assets.music.read-only"
    ASSETS_MUSIC_READ_WRITE = "assets.music.read-write"
    ASSETS_MOVIES_READ_ONLY = "assets.movies.read-only"
    ASSETS_MOVIES_READ_WRITE = "assets.movies.read-write"
    FILES_ALL = "files.all"
    CS_ALLOW_JIT = "cs.allow-jit"
    CS_DEBUGGER = "cs.debugger"
    CS_ALLOW_UNSIGNED_EXECUTABLE_MEMORY = "cs.allow-unsigned-executable-memory"
    CS_ALLOW_DYLD_ENVIRONMENT_VARIABLES = "cs.allow-dyld-environment-variables"
    CS_DISABLE_LIBRARY_VALIDATION = "cs.disable-library-validation"
    CS_DISABLE_EXECUTABLE_PAGE_PROTECTION = "cs.disable-executable-page-protection"
    SCRIPTING_TARGETS = "scripting-targets"
    APPLICATION_GROUPS = "application-groups"
    FILES_BOOKMARKS_APP_SCOPE = "files.bookmarks.app-scope"
    FILES_BOOKMARKS_DOCUMENT_SCOPE = "files.bookmarks.document-scope"
    FILES_HOME_RELATIVE_PATH_READ_ONLY = "temporary-exception.files.home-relative-path.read-only"
    FILES_HOME_RELATIVE_PATH_READ_WRITE = "temporary-exception.files.home-relative-path.read-write"
    FILES_ABSOLUTE_PATH_READ_ONLY = "temporary-exception.files.absolute-path.read-only"
    FILES_ABSOLUTE_PATH_READ_WRITE = "temporary-exception.files.absolute-path.read-write"
    APPLE_EVENTS = "temporary-exception.apple-events"
    AUDIO_UNIT_HOST = "temporary-exception.audio-unit-host"
    IOKIT_USER_CLIENT_CLASS = "temporary-exception.iokit-user-client-class"
    MACH_LOOKUP_GLOBAL_NAME = "temporary-exception.mach-lookup.global-name"
    MACH_REGISTER_GLOBAL_NAME = "temporary-exception.mach-register.global-name"
    SHARED_PREFERENCE_READ_ONLY = "temporary-exception.shared-preference.read-only"
    SHARED_PREFERENCE_READ_WRITE = "temporary-exception.shared-preference.read-write"
    MAIL_CLIENT = "com.apple.developer.mail-client"
    WEB_BROWSER = "com.apple.developer.web-browser"
    AUTOFILL_CREDENTIAL_PROVIDER = "com.apple.developer.authentication-services.autofill-credential-provider"
    SIGN_IN_WITH_APPLE = "com.apple.developer.applesignin"
    CONTACTS_NOTES = "com.apple.developer.contacts.notes"
    CLASSKIT = "com.apple.developer.ClassKit-environment"
    AUTOMATIC_ASSESSMENT_CONFIGURATION = "com.apple.developer.automatic-assessment-configuration"
    GAME_CENTER = "com.apple.developer.game-center"
    HEALTHKIT = "com.apple.developer.healthkit"
    HEALTHKIT_ACCESS = "com.apple.developer.healthkit.access"
    HOMEKIT = "com.apple.developer.homekit"
    ICLOUD_DEVELOPMENT_CONTAINERS = "com.apple.developer.icloud-container-development-container-identifiers"
    ICLOUD_CONTAINER_ENVIRONMENT = "com.apple.developer.icloud-container-environment"
    ICLOUD_CONTAINERS = "com.apple.developer.icloud-container-identifiers"
    ICLOUD_SERVICES = "com.apple.developer.icloud-services"
    ICLOUD_KEY_VALUE_STORE = "com.apple.developer.ubiquity-kvstore-identifier"
    INTER_APP_AUDIO = "inter-app-audio"
    NETWORK_EXTENSIONS = "com.apple.developer.networking.networkextension"
    PERSONAL_VPN = "com.apple.developer.networking.vpn.api"
    PUSH_NOTIFICATIONS = "aps-environment"
    KEYCHAIN_ACCESS_GROUPS = "keychain-access-groups"
    DATA_PROTECTION = "com.apple.developer.default-data-protection"
    SIRI = "com.apple.developer.siri"
    WALLET_PASSES = "com.apple.developer.pass-type-identifiers"
    APPLE_PAY = "com.apple.developer.in-app-payments"
    WIFI_INFO = "com.apple.developer.networking.wifi-info"
    WIRELESS_ACCESSORY_CONFIGURATION = "com.apple.external-accessory.wireless-configuration"
    MULTIPATH = "com.apple.developer.networking.multipath"
    HOTSPOT_CONFIGURATION = "com.apple.developer.networking.HotspotConfiguration"
    NFC_TAG_READING = "com.apple.developer.nfc.readersession.formats"
    ASSOCIATED_DOMAINS = "com.apple.developer.associated-domains"
    MAPS = "com.apple.developer.maps"
    DRIVERKIT_PCI = "com.apple.developer.driverkit.transport.pci"

    @property
    def entitlement_key(self) -> str:
        """Return the fully qualified key used in entitlements documents."""

        if self in _CAPABILITIES:
            return self.value
        return ENTITLEMENT_PREFIX + self.value

    @property
    def usage_description_properties(self) -> tuple[str, ...] | None:
        """Return the ``FairUsage`` keys that may justify this entitlement.

        Returns:
            tuple[str, ...] | None: ``None`` when the entitlement is forbidden,
            an empty tuple when it needs no justification, otherwise the
            candidate keys in lookup order.
        """

        if self in _FORBIDDEN:
            return None
        if self in _UNJUSTIFIED:
            return ()
        return (self.entitlement_key,)


_FORBIDDEN: Final[frozenset[AppEntitlement]] = frozenset(
    {
        AppEntitlement.FILES_ALL,
        AppEntitlement.CS_ALLOW_UNSIGNED_EXECUTABLE_MEMORY,
        AppEntitlement.CS_ALLOW_DYLD_ENVIRONMENT_VARIABLES,
        AppEntitlement.CS_DISABLE_EXECUTABLE_PAGE_PROTECTION,
    },
)

_UNJUSTIFIED: Final[frozenset[AppEntitlement]] = frozenset(
    {
        AppEntitlement.APP_SANDBOX,
        AppEntitlement.CS_ALLOW_JIT,
        AppEntitlement.CS_DISABLE_LIBRARY_VALIDATION,
    },
)

_UNPREFIXED_CAPABILITIES: Final[frozenset[str]] = frozenset(
    {"inter-app-audio", "aps-environment", "keychain-access-groups"},
)

_CAPABILITIES: Final[frozenset[AppEntitlement]] = frozenset(
    item for item in AppEntitlement if item.value.startswith("com.apple.") or item.value in _UNPREFIXED_CAPABILITIES
)

_CANONICAL_ORDER: Final[dict[AppEntitlement, int]] = {item: index for index, item in enumerate(AppEntitlement)}


class AppPermission(BaseModel):
    """A justified entitlement as recorded in seals and catalog items."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    type: AppEntitlement
    usage_description: str = Field(alias="usageDescription")


def _first_usage_description(usage: PropertyList, candidates: Iterable[str]) -> str | None:
    for key in candidates:
        value = usage.string(key)
        if value is not None and value.strip():
            return value
    return None


@dataclass(frozen=True, slots=True)
class EntitlementValidator:
    """Validate entitlements documents and sealed permission lists.

    Attributes:
        catalog_app_names: App names exempt from the sandbox requirement.
    """

    catalog_app_names: tuple[str, ...] = DEFAULT_CATALOG_APP_NAMES

    def validate(
        self,
        entitlements: Mapping[str, Any],
        info_properties: Mapping[str, Any],
        *,
        app_name: str | None = None,
        require_sandbox: bool = True,
    ) -> list[AppPermission]:
        """Return the permissions justified by ``info_properties``.

        Args:
            entitlements: Decoded entitlements document.
            info_properties: Decoded Info.plist of the same app.
            app_name: Name of the app, used for the sandbox exemption.
            require_sandbox: Whether the sandbox entitlement must be enabled;
                iOS apps are always sandboxed.

        Returns:
            list[AppPermission]: Justified permissions in canonical order.

        Raises:
            SandboxRequiredError: If the sandbox is not enabled for a regular app.
            ForbiddenEntitlementError: If a forbidden entitlement is requested.
            MissingUsageDescriptionError: If a requested entitlement lacks a
                non-blank usage description.
        """

        document = entitlements if isinstance(entitlements, PropertyList) else PropertyList(entitlements)
        info = info_properties if isinstance(info_properties, PropertyList) else PropertyList(info_properties)
        sandbox = AppEntitlement.APP_SANDBOX
        sandboxed = document.get(sandbox.entitlement_key) is True
        if require_sandbox and not sandboxed and app_name not in self.catalog_app_names:
            raise SandboxRequiredError(
                f"The {sandbox.entitlement_key} entitlement must be enabled",
                entitlement=sandbox.value,
            )

        usage = info.fair_usage
        permissions: list[AppPermission] = []
        for entitlement in AppEntitlement:
            value = document.get(entitlement.entitlement_key)
            if value is None or value is False:
                continue
            candidates = entitlement.usage_description_properties
            if candidates is None:
                raise ForbiddenEntitlementError(
                    f"The entitlement {entitlement.entitlement_key} is not permitted",
                    entitlement=entitlement.value,
                )
            if not candidates:
                continue
            description = _first_usage_description(usage, candidates)
            if description is None:
                raise MissingUsageDescriptionError(
                    f"The entitlement {entitlement.entitlement_key} requires a non-blank usage "
                    f"description in the FairUsage dictionary",
                    entitlement=entitlement.value,
                )
            permissions.append(AppPermission(type=entitlement, usage_description=description))
        return permissions

    def validate_permissions(self, permissions: Sequence[AppPermission]) -> list[AppPermission]:
        """Re-check a sealed permission list and return it in canonical order.

        Args:
            permissions: Permissions recorded in a FairSeal.

        Returns:
            list[AppPermission]: The same permissions sorted canonically.

        Raises:
            ForbiddenEntitlementError: If a permission names a forbidden entitlement.
            MissingUsageDescriptionError: If a permission carries a blank description.
        """

        for permission in permissions:
            entitlement = permission.type
            if entitlement.usage_description_properties is None:
                raise ForbiddenEntitlementError(
                    f"The entitlement {entitlement.entitlement_key} is not permitted",
                    entitlement=entitlement.value,
                )
            if not permission.usage_description.strip():
                raise MissingUsageDescriptionError(
                    f"The entitlement {entitlement.entitlement_key} has a blank usage description",
                    entitlement=entitlement.value,
                )
        return sorted(permissions, key=lambda item: _CANONICAL_ORDER[item.type])


__all__ = ["AppEntitlement", "AppPermission", "ENTITLEMENT_PREFIX", "EntitlementValidator"]
