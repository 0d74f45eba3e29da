# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Tests for entitlement and usage-description validation."""

from __future__ import annotations

import pytest

from fairground.entitlements import AppEntitlement, AppPermission, EntitlementValidator
from fairground.errors import (
    ForbiddenEntitlementError,
    MissingUsageDescriptionError,
    SandboxRequiredError,
)

SANDBOX = "com.apple.security.app-sandbox"
CLIENT = "com.apple.security.network.client"
CAMERA = "com.apple.security.device.camera"


def _info(**usage: str) -> dict[str, object]:
    return {"CFBundleIdentifier": "app.App-Name", "FairUsage": dict(usage)}


def test_justified_entitlements_become_permissions() -> None:
    entitlements = {SANDBOX: True, CAMERA: True, CLIENT: True}
    info = _info(**{CLIENT: "Downloads catalogs", CAMERA: "Scans codes"})

    permissions = EntitlementValidator().validate(entitlements, info)

    assert [permission.type for permission in permissions] == [
        AppEntitlement.NETWORK_CLIENT,
        AppEntitlement.CAMERA,
    ]
    assert permissions[0].usage_description == "Downloads catalogs"


def test_false_entitlement_is_omitted() -> None:
    permissions = EntitlementValidator().validate({SANDBOX: True, CAMERA: False}, _info())

    assert permissions == []


def test_missing_usage_description_names_entitlement() -> None:
    with pytest.raises(MissingUsageDescriptionError) as excinfo:
        EntitlementValidator().validate({SANDBOX: True, CAMERA: True}, _info(**{CAMERA: "   "}))

    assert excinfo.value.entitlement == "device.camera"
    assert CAMERA in str(excinfo.value)


def test_forbidden_entitlement_is_rejected() -> None:
    entitlements = {SANDBOX: True, "com.apple.security.files.all": True}

    with pytest.raises(ForbiddenEntitlementError) as excinfo:
        EntitlementValidator().validate(entitlements, _info(**{"com.apple.security.files.all": "everything"}))

    assert excinfo.value.entitlement == "files.all"


def test_sandbox_is_required() -> None:
    with pytest.raises(SandboxRequiredError):
        EntitlementValidator().validate({CLIENT: True}, _info(**{CLIENT: "network"}))


def test_catalog_app_is_exempt_from_sandbox() -> None:
    permissions = EntitlementValidator().validate({CLIENT: True}, _info(**{CLIENT: "network"}), app_name="App-Fair")

    assert [permission.type for permission in permissions] == [AppEntitlement.NETWORK_CLIENT]


def test_jit_needs_no_justification() -> None:
    permissions = EntitlementValidator().validate(
        {SANDBOX: True, "com.apple.security.cs.allow-jit": True},
        _info(),
    )

    assert permissions == []


def test_validate_permissions_sorts_canonically() -> None:
    permissions = [
        AppPermission(type=AppEntitlement.CAMERA, usage_description="camera"),
        AppPermission(type=AppEntitlement.NETWORK_CLIENT, usage_description="network"),
    ]

    result = EntitlementValidator().validate_permissions(permissions)

    assert [permission.type for permission in result] == [AppEntitlement.NETWORK_CLIENT, AppEntitlement.CAMERA]


def test_validate_permissions_rejects_blank_description() -> None:
    with pytest.raises(MissingUsageDescriptionError):
        EntitlementValidator().validate_permissions(
            [AppPermission(type=AppEntitlement.CAMERA, usage_description=" ")],
        )


def test_permission_wire_format_uses_camel_case() -> None:
    permission = AppPermission.model_validate({"type": "network.client", "usageDescription": "network"})

    assert permission.model_dump(by_alias=True, mode="json") == {
        "type": "network.client",
        "usageDescription": "network",
    }


def test_entitlement_keys_are_prefixed() -> None:
    assert AppEntitlement.APP_SANDBOX.entitlement_key == SANDBOX
    assert AppEntitlement.FILES_ALL.usage_description_properties is None
    assert AppEntitlement.CS_ALLOW_JIT.usage_description_properties == ()
    assert AppEntitlement.CAMERA.usage_description_properties == (CAMERA,)


def test_capability_keys_are_not_prefixed() -> None:
    assert AppEntitlement.HEALTHKIT.entitlement_key == "com.apple.developer.healthkit"
    assert AppEntitlement.PUSH_NOTIFICATIONS.entitlement_key == "aps-environment"
    assert AppEntitlement.PRINT.entitlement_key == "com.apple.security.print"
    assert AppEntitlement.APPLICATION_GROUPS.entitlement_key == "com.apple.security.application-groups"


def test_disable_library_validation_needs_no_description() -> None:
    entitlements = {SANDBOX: True, "com.apple.security.cs.disable-library-validation": True}

    assert EntitlementValidator().validate(entitlements, _info()) == []


@pytest.mark.parametrize(
    "key",
    [
        "com.apple.security.files.all",
        "com.apple.security.cs.allow-unsigned-executable-memory",
        "com.apple.security.cs.allow-dyld-environment-variables",
        "com.apple.security.cs.disable-executable-page-protection",
    ],
)
def test_code_signing_escapes_are_forbidden(key: str) -> None:
    with pytest.raises(ForbiddenEntitlementError):
        EntitlementValidator().validate({SANDBOX: True, key: True}, _info(**{key: "Because"}))


def test_path_exception_is_justified_by_usage_description() -> None:
    key = "com.apple.security.temporary-exception.files.absolute-path.read-only"
    entitlements = {SANDBOX: True, key: ["/Library/Fonts/"]}

    (permission,) = EntitlementValidator().validate(entitlements, _info(**{key: "Reads shared fonts"}))

    assert permission.type is AppEntitlement.FILES_ABSOLUTE_PATH_READ_ONLY
    assert permission.usage_description == "Reads shared fonts"
    with pytest.raises(MissingUsageDescriptionError, match="absolute-path.read-only"):
        EntitlementValidator().validate(entitlements, _info())


def test_capability_entitlement_requires_description() -> None:
    key = "com.apple.developer.healthkit"

    with pytest.raises(MissingUsageDescriptionError) as excinfo:
        EntitlementValidator().validate({SANDBOX: True, key: True}, _info())

    assert excinfo.value.entitlement == key
    (permission,) = EntitlementValidator().validate({SANDBOX: True, key: True}, _info(**{key: "Reads workouts"}))
    assert permission.type is AppEntitlement.HEALTHKIT
    assert permission.model_dump(by_alias=True, mode="json")["type"] == key
