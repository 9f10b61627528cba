#
# SPDX-License-Identifier: LicenseRef-Ezurio-Clause
# Copyright (C) 2024 Ezurio LLC.
#
"""
Names, paths and per-type trait tables shared by the mirror and the RPC layer
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional

CONNMAN_APPLET_VERSION = "1.0.0"

# connman-applet.ini is the applet configuration. It is optional.
CONNMAN_APPLET_CONF_FILE = "/etc/connman-applet.ini"
CONNMAN_APPLET_CONF_ENV = "CONNMAN_APPLET_CONFIG"
CONNMAN_APPLET_CONF_SECTION = "connman-applet"

DBUS_BUS_NAME = "org.freedesktop.DBus"
DBUS_OBJ_PATH = "/org/freedesktop/DBus"
DBUS_IFACE = "org.freedesktop.DBus"

CONNMAN_BUS_NAME = "net.connman"
CONNMAN_MANAGER_OBJ_PATH = "/"
CONNMAN_MANAGER_IFACE = "net.connman.Manager"
CONNMAN_TECHNOLOGY_IFACE = "net.connman.Technology"
CONNMAN_SERVICE_IFACE = "net.connman.Service"
CONNMAN_AGENT_IFACE = "net.connman.Agent"
CONNMAN_AGENT_ERROR_PREFIX = "net.connman.Agent.Error"

CONNMAN_VPN_BUS_NAME = "net.connman.vpn"
CONNMAN_VPN_MANAGER_OBJ_PATH = "/"
CONNMAN_VPN_MANAGER_IFACE = "net.connman.vpn.Manager"
CONNMAN_VPN_CONNECTION_IFACE = "net.connman.vpn.Connection"
CONNMAN_VPN_AGENT_IFACE = "net.connman.vpn.Agent"
CONNMAN_VPN_AGENT_ERROR_PREFIX = "net.connman.vpn.Agent.Error"

# The VPN daemon has no technology objects, connections are grouped under this one
CONNMAN_VPN_TECHNOLOGY_OBJ_PATH = "/net/connman/technology/vpn"

DEFAULT_AGENT_PATH = "/net/connman/applet/agent"
DEFAULT_VPN_AGENT_PATH = "/net/connman/applet/vpn_agent"

DEFAULT_SCAN_INTERVAL_SECONDS = 15

SYSLOG_IDENT = "connman-applet"


class TechnologyType(str, Enum):
    """Technology categories known to the applet"""

    ETHERNET = "ethernet"
    WIFI = "wifi"
    BLUETOOTH = "bluetooth"
    P2P = "p2p"
    CELLULAR = "cellular"
    VPN = "vpn"


class ServiceType(str, Enum):
    """Service types, anything the daemon reports beyond these is OTHER"""

    ETHERNET = "ethernet"
    WIFI = "wifi"
    BLUETOOTH = "bluetooth"
    CELLULAR = "cellular"
    VPN = "vpn"
    OTHER = "other"


class ServiceState(str, Enum):
    """
    Values of the service 'State' property.

    See below for more info:
    https://git.kernel.org/pub/scm/network/connman/connman.git/tree/doc/service-api.txt
    """

    IDLE = "idle"
    FAILURE = "failure"
    ASSOCIATION = "association"
    CONFIGURATION = "configuration"
    READY = "ready"
    DISCONNECT = "disconnect"
    ONLINE = "online"


CONNECTABLE_STATES = frozenset(
    [ServiceState.IDLE.value, ServiceState.FAILURE.value, ServiceState.DISCONNECT.value]
)
"""States in which the connection switch issues a Connect request"""

INACTIVE_STATES = CONNECTABLE_STATES
"""A service in any other state counts as active (connecting or connected)"""

CONNECTED_STATES = frozenset([ServiceState.ONLINE.value, ServiceState.READY.value])
ACQUIRING_STATES = frozenset(
    [ServiceState.CONFIGURATION.value, ServiceState.ASSOCIATION.value]
)
OFFLINE_STATES = frozenset([ServiceState.DISCONNECT.value, ServiceState.IDLE.value])

TYPE_PRIORITY: Dict[str, int] = {
    "ethernet": 0,
    "wifi": 1,
    "bluetooth": 2,
    "p2p": 3,
    "cellular": 4,
    "vpn": 5,
    "other": 6,
}
"""Display order of technologies, lower values first"""

ACTION_CONNECT = "Connect"
ACTION_RECONNECT = "Reconnect"
ACTION_DISCONNECT = "Disconnect"

POWER_ON_LABEL = "Turn On"
POWER_OFF_LABEL = "Turn Off"

SELECT_NETWORK_LABEL = "Select wireless network"
PICKER_TITLE = "Connect to..."
CREDENTIALS_TITLE = "Authentication required by network connection"

INTERFACE_IDLE_STATUS = "Idle"
INTERFACE_CONNECTED_STATUS = "Connected"

ICON_ERROR = "network-error-symbolic"
ICON_OFFLINE = "network-offline-symbolic"

HIDDEN_NETWORK_LABEL = "Hidden network"
HIDDEN_NETWORK_LABELS: Dict[str, str] = {
    "ieee8021x": "Hidden enterprise network",
    "psk": "Hidden WPA network",
    "wep": "Hidden WEP network",
    "wps": "Hidden WPS network",
    "none": "Hidden open network",
}

SECURITY_BADGE_SECURED = "network-wireless-encrypted-symbolic"
SECURITY_BADGES: Dict[str, str] = {
    "ieee8021x": "security-high-symbolic",
    "wep": "security-low-symbolic",
}


@dataclass(frozen=True)
class ServiceTraits:
    """Per-type presentation traits, chosen once when a service mirror is built"""

    default_label: str
    settings_label: str
    settings_target: str
    connected_icon: str
    """May contain a '{grade}' placeholder for signal-strength graded types"""
    acquiring_icon: str
    offline_icon: str
    signal_graded: bool = False
    hide_when_inactive: bool = False
    security_badge: bool = False


SERVICE_TRAITS: Dict[ServiceType, ServiceTraits] = {
    ServiceType.ETHERNET: ServiceTraits(
        default_label="Wired Connection",
        settings_label="Wired Settings",
        settings_target="network",
        connected_icon="network-wired-symbolic",
        acquiring_icon="network-wired-acquiring-symbolic",
        offline_icon="network-wired-disconnected-symbolic",
    ),
    ServiceType.WIFI: ServiceTraits(
        default_label="Wireless Connection",
        settings_label="Wireless Settings",
        settings_target="wifi",
        connected_icon="network-wireless-signal-{grade}-symbolic",
        acquiring_icon="network-wireless-acquiring-symbolic",
        offline_icon="network-wireless-offline-symbolic",
        signal_graded=True,
        hide_when_inactive=True,
        security_badge=True,
    ),
    ServiceType.BLUETOOTH: ServiceTraits(
        default_label="Bluetooth Connection",
        settings_label="Bluetooth Settings",
        settings_target="bluetooth",
        connected_icon="bluetooth-active-symbolic",
        acquiring_icon="bluetooth-active-symbolic",
        offline_icon="bluetooth-disabled-symbolic",
    ),
    ServiceType.CELLULAR: ServiceTraits(
        default_label="Cellular Connection",
        settings_label="Mobile Broadband Settings",
        settings_target="wwan",
        connected_icon="network-cellular-signal-{grade}-symbolic",
        acquiring_icon="network-cellular-acquiring-symbolic",
        offline_icon="network-cellular-offline-symbolic",
        signal_graded=True,
    ),
    ServiceType.VPN: ServiceTraits(
        default_label="VPN Connection",
        settings_label="VPN Settings",
        settings_target="network",
        connected_icon="network-vpn-symbolic",
        acquiring_icon="network-vpn-acquiring-symbolic",
        offline_icon="network-vpn-disabled-symbolic",
    ),
    ServiceType.OTHER: ServiceTraits(
        default_label="Connection",
        settings_label="Settings",
        settings_target="network",
        connected_icon="network-transmit-receive-symbolic",
        acquiring_icon="network-transmit-receive-symbolic",
        offline_icon=ICON_OFFLINE,
    ),
}

TECHNOLOGY_LABELS: Dict[TechnologyType, str] = {
    TechnologyType.ETHERNET: "Wired",
    TechnologyType.WIFI: "Wireless",
    TechnologyType.BLUETOOTH: "Bluetooth",
    TechnologyType.P2P: "Wi-Fi P2P",
    TechnologyType.CELLULAR: "Cellular",
    TechnologyType.VPN: "VPN",
}

SERVICE_TECHNOLOGY: Dict[ServiceType, Optional[TechnologyType]] = {
    ServiceType.ETHERNET: TechnologyType.ETHERNET,
    ServiceType.WIFI: TechnologyType.WIFI,
    ServiceType.BLUETOOTH: TechnologyType.BLUETOOTH,
    ServiceType.CELLULAR: TechnologyType.CELLULAR,
    ServiceType.VPN: TechnologyType.VPN,
    ServiceType.OTHER: None,
}
"""Technology owning each service type, OTHER services have no technology"""

