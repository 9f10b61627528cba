#
# SPDX-License-Identifier: LicenseRef-Ezurio-Clause
# Copyright (C) 2024 Ezurio LLC.
#
"""
Module to mirror the ConnMan manager: the registry of technologies and the index routing service
notifications to the technology that owns them
"""

from syslog import syslog, LOG_DEBUG, LOG_INFO
from typing import Any, Callable, Dict, Iterable, Optional

from connman_applet import definition
from connman_applet.definition import ServiceType, SERVICE_TECHNOLOGY, TYPE_PRIORITY
from connman_applet.mirror.messages import (
    InboundMessage,
    PropertyChanged,
    ServiceChanged,
    ServiceRemoved,
    TechnologyAdded,
    TechnologyRemoved,
)
from connman_applet.mirror.service import ServiceMirror
from connman_applet.mirror.technology import TechnologyMirror, create_technology
from connman_applet.presentation import MenuElement, Presentation
from connman_applet.utils import (
    UnknownTypeError,
    log_exception,
    service_type_from_path,
    technology_type_from_path,
)


class ManagerMirror(object):
    """
    Root of the mirror tree for one daemon presence.

    'client' is the request/response collaborator (see services.connman_service): it enumerates
    technologies and services and hands out per-object proxies. Every inbound message goes through
    dispatch(), which applies each item independently so that one bad item cannot stop the rest.
    """

    def __init__(
        self,
        presentation: Presentation,
        client,
        container: Optional[MenuElement] = None,
        ignored_service_types: Iterable[str] = (),
        scan_interval: float = definition.DEFAULT_SCAN_INTERVAL_SECONDS,
        scheduler: Optional[Callable] = None,
    ) -> None:
        self.presentation = presentation
        self.client = client
        self.container = container if container is not None else presentation.root
        self.technologies: Dict[str, TechnologyMirror] = {}
        self.service_index: Dict[str, str] = {}
        self.properties: Dict[str, Any] = {}
        self.closed = False
        self._ignored_service_types = frozenset(ignored_service_types)
        self._scan_interval = scan_interval
        self._scheduler = scheduler

    def __repr__(self) -> str:
        return (
            f"<ManagerMirror technologies={list(self.technologies)} "
            f"services={len(self.service_index)}>"
        )

    def _position(self, technology_type: str) -> int:
        priority = TYPE_PRIORITY.get(technology_type, TYPE_PRIORITY["other"])
        return sum(
            1
            for existing in self.technologies
            if TYPE_PRIORITY.get(existing, TYPE_PRIORITY["other"]) <= priority
        )

    def on_technology_added(self, path: str, properties: dict) -> None:
        technology_type = technology_type_from_path(path)
        if technology_type in self.technologies:
            syslog(LOG_INFO, f"Technology {technology_type} already known, ignoring")
            return

        technology = create_technology(
            path,
            technology_type,
            properties,
            self.client.technology_proxy(path),
            self.presentation,
            scan_interval=self._scan_interval,
            scheduler=self._scheduler,
        )
        self.container.add_child(technology.section, self._position(technology_type))
        self.technologies[technology_type] = technology
        syslog(LOG_DEBUG, f"Added technology {technology_type}")

    def on_technology_removed(self, path: str) -> None:
        technology_type = technology_type_from_path(path)
        technology = self.technologies.pop(technology_type, None)
        if technology is None:
            syslog(LOG_INFO, f"Tried to remove unknown technology {technology_type}")
            return

        for service_id in [
            service_id
            for service_id, owner in self.service_index.items()
            if owner == technology_type
        ]:
            del self.service_index[service_id]
        technology.destroy()
        self.presentation.fixup_after_removal(self.container)
        syslog(LOG_DEBUG, f"Removed technology {technology_type}")

    def on_service_changed(self, path: str, properties: dict) -> None:
        owner = self.service_index.get(path)
        if owner is not None:
            self.technologies[owner].update_service(path, properties)
            return

        service_type = properties.get("Type") or service_type_from_path(path)
        if service_type in self._ignored_service_types:
            syslog(LOG_DEBUG, f"Ignoring {service_type} service {path}")
            return

        try:
            technology_type = SERVICE_TECHNOLOGY[ServiceType(service_type)]
        except ValueError:
            raise UnknownTypeError(f"Unknown service type '{service_type}' for {path}")

        technology = (
            self.technologies.get(technology_type.value) if technology_type else None
        )
        if technology is None:
            syslog(LOG_INFO, f"No technology for {service_type} service {path}, ignoring")
            return

        service = ServiceMirror(
            path,
            service_type,
            self.client.service_proxy(path),
            self.presentation,
            properties,
            on_property_changed=technology.update_service,
        )
        try:
            technology.add_service(path, service)
        except Exception:
            service.destroy()
            raise
        self.service_index[path] = technology.type.value
        syslog(LOG_DEBUG, f"Added {service_type} service {path}")

    def on_service_removed(self, path: str) -> None:
        owner = self.service_index.pop(path, None)
        if owner is None:
            syslog(LOG_INFO, f"Tried to remove unknown service {path}")
            return
        self.technologies[owner].remove_service(path)

    def on_property_changed(self, name: str, value: Any) -> None:
        self.properties[name] = value
        syslog(LOG_DEBUG, f"Manager property {name} = {value}")

    def _apply(self, handler: Callable, *args) -> None:
        try:
            handler(*args)
        except Exception as exception:
            log_exception(exception, f"Failed to apply {handler.__name__}{args[:1]}: ")

    def dispatch(self, message: InboundMessage) -> None:
        if isinstance(message, TechnologyAdded):
            self._apply(self.on_technology_added, message.path, message.properties)
        elif isinstance(message, TechnologyRemoved):
            self._apply(self.on_technology_removed, message.path)
        elif isinstance(message, ServiceChanged):
            for path, properties in message.services:
                self._apply(self.on_service_changed, path, properties)
        elif isinstance(message, ServiceRemoved):
            for path in message.paths:
                self._apply(self.on_service_removed, path)
        elif isinstance(message, PropertyChanged):
            self._apply(self.on_property_changed, message.name, message.value)
        else:
            syslog(LOG_INFO, f"Ignoring unexpected message {message!r}")

    def clear(self) -> None:
        """Destroy every technology and service"""
        if not self.technologies:
            self.service_index.clear()
            return
        for technology in list(self.technologies.values()):
            technology.destroy()
        self.technologies.clear()
        self.service_index.clear()
        self.presentation.fixup_after_removal(self.container)

    def close(self) -> None:
        self.closed = True
        self.clear()

    async def resync_all(self) -> None:
        """
        Rebuild the whole tree from a fresh enumeration of technologies, then services.
        Starts from an empty mirror, so running it again never duplicates state.
        """
        self.clear()

        try:
            technologies = await self.client.get_technologies()
        except Exception as exception:
            log_exception(exception, "Failed to enumerate technologies: ")
            return
        if self.closed:
            return
        for path, properties in technologies:
            self.dispatch(TechnologyAdded(path, properties))

        try:
            services = await self.client.get_services()
        except Exception as exception:
            log_exception(exception, "Failed to enumerate services: ")
            return
        if self.closed:
            return
        self.dispatch(ServiceChanged(list(services)))
