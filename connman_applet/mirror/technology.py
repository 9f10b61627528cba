#
# SPDX-License-Identifier: LicenseRef-Ezurio-Clause
# Copyright (C) 2024 Ezurio LLC.
#
"""
Module to mirror one ConnMan technology and the services it owns
"""

from syslog import syslog, LOG_DEBUG, LOG_INFO, LOG_WARNING
from typing import Any, Dict, Iterable, Optional

from connman_applet import definition
from connman_applet.definition import TechnologyType, TECHNOLOGY_LABELS
from connman_applet.mirror.messages import InboundMessage, PropertyChanged
from connman_applet.mirror.service import ServiceMirror
from connman_applet.mirror.wireless import WirelessExtension
from connman_applet.presentation import Presentation
from connman_applet.utils import (
    UnknownTypeError,
    is_known_technology,
    log_exception,
    merge_properties,
)


def select_indicator(services: Iterable[ServiceMirror]) -> Optional[ServiceMirror]:
    """
    Choose the service whose indicator represents the technology.

    The first service is the default. Any service that is not idle replaces it, and any service
    that is neither idle nor failed replaces that in turn. Within each pass the last match wins.
    """
    services = list(services)
    if not services:
        return None

    selected = services[0]
    for service in services:
        if service.state != definition.ServiceState.IDLE.value:
            selected = service
    for service in services:
        if service.state not in (
            definition.ServiceState.IDLE.value,
            definition.ServiceState.FAILURE.value,
        ):
            selected = service
    return selected


class TechnologyMirror(object):
    """
    Reconciled state of one technology. Owns a menu section holding the power toggle and a
    content section with the elements of its services. Only the content follows 'Powered',
    the toggle stays visible while the technology is off. An optional extension (wifi) is
    notified of every service add, update and removal and decides where service elements go.
    """

    def __init__(
        self,
        path: str,
        technology_type: str,
        properties: Optional[dict],
        proxy,
        presentation: Presentation,
        extension=None,
    ) -> None:
        if not is_known_technology(technology_type):
            raise UnknownTypeError(f"Unknown technology type '{technology_type}' for {path}")

        self.path = path
        self.type = TechnologyType(technology_type)
        self.proxy = proxy
        self.presentation = presentation
        self.extension = extension
        self.properties: Dict[str, Any] = {}
        self.services: Dict[str, ServiceMirror] = {}
        self.indicator_service: Optional[ServiceMirror] = None
        self._subscription: Optional[int] = None

        self.section = presentation.create_section(TECHNOLOGY_LABELS[self.type])
        self.power_item = presentation.create_item(
            definition.POWER_OFF_LABEL, self.toggle_power
        )
        self.section.add_child(self.power_item)
        self.content = presentation.create_section()
        self.section.add_child(self.content)
        if proxy is None:
            # Nothing to toggle without a remote technology object
            self.power_item.hide()

        if extension is not None:
            extension.attach(self)

        self.apply_properties(properties or {})

        if proxy is not None:
            self._subscription = proxy.subscribe_property_changed(self._property_changed)

    def __repr__(self) -> str:
        return f"<TechnologyMirror {self.type.value} ({len(self.services)} services)>"

    @property
    def powered(self) -> bool:
        return bool(self.properties.get("Powered", False))

    @property
    def icon(self) -> Optional[str]:
        if self.indicator_service is None:
            return None
        return self.indicator_service.icon

    def _property_changed(self, name: str, value: Any) -> None:
        self.dispatch(PropertyChanged(name, value, self.path))

    def dispatch(self, message: InboundMessage) -> None:
        if isinstance(message, PropertyChanged):
            syslog(LOG_DEBUG, f"{self.type.value}: {message.name} = {message.value}")
            self.apply_properties({message.name: message.value})
        else:
            syslog(LOG_WARNING, f"{self.type.value}: ignoring {type(message).__name__}")

    def apply_properties(self, delta: dict) -> None:
        merge_properties(self.properties, delta)
        powered = self.powered
        self.content.set_visible(powered)
        self.power_item.set_label(
            definition.POWER_OFF_LABEL if powered else definition.POWER_ON_LABEL
        )

    def toggle_power(self) -> None:
        if self.proxy is None:
            return
        syslog(LOG_INFO, f"Setting {self.type.value} Powered to {not self.powered}")
        self.proxy.set_property_remote("Powered", not self.powered, "b")

    def add_service(self, service_id: str, service: ServiceMirror) -> None:
        if service_id in self.services:
            syslog(LOG_DEBUG, f"Replacing stale service {service_id}")
            self.remove_service(service_id)

        self.services[service_id] = service
        if self.extension is not None:
            self.extension.service_added(service)
        else:
            self.content.add_child(service.element)
        self.update_indicator()

    def update_service(self, service_id: str, delta: dict) -> bool:
        service = self.services.get(service_id)
        if service is None:
            syslog(LOG_INFO, f"Tried to update unknown {self.type.value} service {service_id}")
            return False

        was_active = service.is_active
        service.update(delta)
        if self.extension is not None:
            self.extension.service_updated(service, was_active)
        self.update_indicator()
        return True

    def remove_service(self, service_id: str) -> bool:
        service = self.services.pop(service_id, None)
        if service is None:
            syslog(LOG_INFO, f"Tried to remove unknown {self.type.value} service {service_id}")
            return False

        service.destroy()
        if self.extension is not None:
            self.extension.service_removed(service)
        self.update_indicator()
        self.presentation.fixup_after_removal(self.content)
        return True

    def update_indicator(self) -> None:
        selected = select_indicator(self.services.values())
        for service in self.services.values():
            service.indicator.set_visible(service is selected)
        self.indicator_service = selected

    def destroy(self) -> None:
        for service in list(self.services.values()):
            service.destroy()
        self.services.clear()
        if self.extension is not None:
            self.extension.destroy()
        self.indicator_service = None

        if self._subscription is not None:
            try:
                self.proxy.disconnect_signal(self._subscription)
            except Exception as exception:
                log_exception(exception, f"Failed to disconnect technology proxy {self.path}: ")
            self._subscription = None

        self.section.destroy()


def create_technology(
    path: str,
    technology_type: str,
    properties: Optional[dict],
    proxy,
    presentation: Presentation,
    scan_interval: float = definition.DEFAULT_SCAN_INTERVAL_SECONDS,
    scheduler=None,
) -> TechnologyMirror:
    """Build the mirror of a technology, wifi gets the per-interface extension"""
    extension = None
    if technology_type == TechnologyType.WIFI.value:
        extension = WirelessExtension(presentation, scan_interval, scheduler)
    return TechnologyMirror(
        path, technology_type, properties, proxy, presentation, extension=extension
    )
