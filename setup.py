#!/usr/bin/env python3
"""
Setup script for clack, a conversational message-exchange server and client
"""

from setuptools import setup, find_namespace_packages

setup(
    name="clack",
    version="0.1.0",
    description="Turn-taking message exchange between one server and one client over WebSockets",
    packages=find_namespace_packages(include=["server*", "client*", "shared*"]),
    install_requires=[
        "websockets>=15.0",
        "typer>=0.12.3",
        "rich>=13.9.2",
        "aioconsole>=0.8.1",
        "PyYAML>=6.0.1",
    ],
    extras_require={
        "test": [
            "pytest>=8.4.2",
            "pytest-asyncio>=1.2.0",
        ],
    },
    python_requires=">=3.10",
    entry_points={
        'console_scripts': [
            'clack-server=server.server:app',
            'clack-client=client.clack_cli:main',
        ],
    },
)
