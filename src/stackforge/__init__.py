"""Stackforge - Interactive multi-module project scaffolding.

This package composes reusable infrastructure and service modules into a
concrete project: it fetches module templates, walks the user through
every module parameter and credential, and renders the result into a
target directory, optionally provisioning remote repositories and
applying infrastructure.
"""

__version__ = "0.1.0"
