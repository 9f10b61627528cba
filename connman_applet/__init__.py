"""
ConnMan applet main module
"""

import asyncio
from syslog import LOG_UPTO, syslog, openlog, setlogmask

from connman_applet.applet import ConnmanApplet
from connman_applet.definition import CONNMAN_APPLET_VERSION, SYSLOG_IDENT
from connman_applet.presentation import HeadlessPresentation
from connman_applet.settings import AppletSettings


async def start():
    """Configure logging and start the application"""
    openlog(SYSLOG_IDENT)
    setlogmask(LOG_UPTO(AppletSettings.get_log_priority()))
    syslog(f"Starting connman-applet {CONNMAN_APPLET_VERSION}")

    applet = ConnmanApplet(HeadlessPresentation())
    await applet.enable()
    try:
        # Run until cancelled
        await asyncio.get_event_loop().create_future()
    finally:
        await applet.disable()


def main():
    """Main entry point"""
    try:
        asyncio.run(start())
    except KeyboardInterrupt:
        syslog("Stopped")
