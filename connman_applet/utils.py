#
# SPDX-License-Identifier: LicenseRef-Ezurio-Clause
# Copyright (C) 2024 Ezurio LLC.
#
"""Module to hold various utility functions"""

import asyncio
import logging
from syslog import syslog, LOG_ERR
from typing import Any, Awaitable, Optional, Set

from dbus_fast import Variant

from connman_applet.definition import ServiceType, TechnologyType

# Strong references to tasks started by run_in_background until they finish
_background_tasks: Set[asyncio.Future] = set()


class Singleton(type):
    _instances = {}

    def __call__(cls, *args, **kwargs):
        if cls not in cls._instances:
            cls._instances[cls] = super(Singleton, cls).__call__(*args, **kwargs)
        return cls._instances[cls]


class UnknownTypeError(ValueError):
    """
    Exception Class for technologies or services of a type the applet cannot mirror
    """


def variant_to_python(data: Any) -> Any:
    """Convert/unpack a Variant (or potentially variant) object to its value"""
    if isinstance(data, dict):
        return {k: variant_to_python(v) for k, v in data.items()}
    if isinstance(data, list):
        return [variant_to_python(item) for item in data]
    if isinstance(data, Variant):
        return variant_to_python(data.value)
    if isinstance(data, bytearray):
        return data.hex()
    return data


def merge_properties(properties: dict, delta: dict) -> dict:
    """
    Merge the property changes in 'delta' into 'properties' in place.

    Nested dictionaries are merged one level deep: only the inner keys present in the update are
    replaced, other inner keys keep their previous value. Lists and scalars replace the old value.
    """
    for key, value in delta.items():
        if isinstance(value, dict):
            current = properties.get(key)
            if not isinstance(current, dict):
                current = {}
                properties[key] = current
            for inner_key, inner_value in value.items():
                current[inner_key] = inner_value
        else:
            properties[key] = value
    return properties


def technology_type_from_path(path: str) -> str:
    """
    Return the technology type key of a technology object path
    (/net/connman/technology/wifi -> wifi)
    """
    return path.rstrip("/").split("/")[-1]


def service_type_from_path(path: str) -> str:
    """
    Derive the service type from a service or VPN connection object path. Used when the daemon
    omits the 'Type' property.
    """
    name = path.rstrip("/").split("/")[-1]
    if "/vpn/" in path or name.startswith("vpn_"):
        return ServiceType.VPN.value

    prefix = name.split("_", 1)[0]
    if prefix in [service_type.value for service_type in ServiceType]:
        return prefix
    return ServiceType.OTHER.value


def is_known_technology(technology_type: str) -> bool:
    return technology_type in [t.value for t in TechnologyType]


def log_exception(exception: BaseException, message: str = "") -> None:
    """Log an exception with its traceback and as a syslog error"""
    logging.getLogger("connman_applet").error(
        message + str(exception), exc_info=exception
    )
    syslog(LOG_ERR, message + str(exception))


def run_in_background(
    coroutine: Awaitable, description: str, loop: Optional[asyncio.AbstractEventLoop] = None
) -> asyncio.Future:
    """
    Schedule the given coroutine without waiting for it. Failures are logged, never raised.
    """
    if loop is None:
        loop = asyncio.get_running_loop()
    task = asyncio.ensure_future(coroutine, loop=loop)
    _background_tasks.add(task)

    def done(future: asyncio.Future) -> None:
        _background_tasks.discard(future)
        if future.cancelled():
            return
        exception = future.exception()
        if exception is not None:
            log_exception(exception, f"{description} failed: ")

    task.add_done_callback(done)
    return task
