#
# SPDX-License-Identifier: LicenseRef-Ezurio-Clause
# Copyright (C) 2024 Ezurio LLC.
#
"""
Module to handle the applet configuration file
"""

import os
from configparser import ConfigParser
from syslog import LOG_DEBUG, LOG_ERR, LOG_INFO, LOG_WARNING, syslog

from connman_applet import definition
from connman_applet.utils import Singleton

SYSLOG_PRIORITIES = {
    "error": LOG_ERR,
    "warning": LOG_WARNING,
    "info": LOG_INFO,
    "debug": LOG_DEBUG,
}


class ServerConfig(object, metaclass=Singleton):
    """Lazily loaded view of the applet configuration file"""

    def __init__(self) -> None:
        self._parser = ConfigParser()
        self.path = os.environ.get(
            definition.CONNMAN_APPLET_CONF_ENV, definition.CONNMAN_APPLET_CONF_FILE
        )
        self.reload()

    def reload(self) -> None:
        self._parser = ConfigParser()
        try:
            self._parser.read(self.path)
        except Exception as e:
            syslog(LOG_ERR, f"Could not read configuration {self.path}: {str(e)}")

    def get_parser(self) -> ConfigParser:
        return self._parser


class AppletSettings(object):
    """Typed accessors for the options of the [connman-applet] section"""

    @classmethod
    def get_scan_interval(cls) -> float:
        try:
            interval = (
                ServerConfig()
                .get_parser()
                .getfloat(
                    section=definition.CONNMAN_APPLET_CONF_SECTION,
                    option="scan_interval",
                    fallback=definition.DEFAULT_SCAN_INTERVAL_SECONDS,
                )
            )
        except ValueError as e:
            syslog(LOG_WARNING, f"Ignoring invalid scan_interval: {str(e)}")
            return definition.DEFAULT_SCAN_INTERVAL_SECONDS
        if interval <= 0:
            syslog(LOG_WARNING, f"Ignoring invalid scan_interval {interval}")
            return definition.DEFAULT_SCAN_INTERVAL_SECONDS
        return interval

    @classmethod
    def get_vpn_enabled(cls) -> bool:
        return (
            ServerConfig()
            .get_parser()
            .getboolean(
                section=definition.CONNMAN_APPLET_CONF_SECTION,
                option="enable_vpn",
                fallback=True,
            )
        )

    @classmethod
    def get_agent_path(cls) -> str:
        return (
            ServerConfig()
            .get_parser()
            .get(
                section=definition.CONNMAN_APPLET_CONF_SECTION,
                option="agent_path",
                fallback=definition.DEFAULT_AGENT_PATH,
            )
        )

    @classmethod
    def get_vpn_agent_path(cls) -> str:
        return (
            ServerConfig()
            .get_parser()
            .get(
                section=definition.CONNMAN_APPLET_CONF_SECTION,
                option="vpn_agent_path",
                fallback=definition.DEFAULT_VPN_AGENT_PATH,
            )
        )

    @classmethod
    def get_log_priority(cls) -> int:
        level = (
            ServerConfig()
            .get_parser()
            .get(
                section=definition.CONNMAN_APPLET_CONF_SECTION,
                option="log_level",
                fallback="info",
            )
            .strip()
            .lower()
        )
        if level not in SYSLOG_PRIORITIES:
            syslog(LOG_WARNING, f"Unknown log_level '{level}', using 'info'")
            return LOG_INFO
        return SYSLOG_PRIORITIES[level]
