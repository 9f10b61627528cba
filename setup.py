#!/usr/bin/python
#
# SPDX-License-Identifier: LicenseRef-Ezurio-Clause
# Copyright (C) 2024 Ezurio LLC.
#

import os

from setuptools import setup

MYDIR = os.path.abspath(os.path.dirname(__file__))

packages = [
    "connman_applet",
    "connman_applet.services",
    "connman_applet.mirror",
]
environment_variable_value = os.environ.get("CONNMAN_APPLET_EXTRA_PACKAGES", "")
if len(environment_variable_value) > 0:
    extra_packages = [s.strip() for s in environment_variable_value.split()]
else:
    extra_packages = []
for package in extra_packages:
    packages.append(package)


def get_version():
    """Read the version from connman_applet/definition.py without importing the package"""
    with open(os.path.join(MYDIR, "connman_applet", "definition.py")) as f:
        for line in f:
            if line.startswith("CONNMAN_APPLET_VERSION"):
                return line.split("=", 1)[1].strip().strip('"')
    return "0.0.0"


def run_setup():
    setup(
        name="connman-applet",
        version=get_version(),
        packages=packages,
        scripts=["connman-applet"],
        python_requires=">=3.8",
        install_requires=["dbus-fast"],
        extras_require={"test": ["pytest"]},
    )


run_setup()
