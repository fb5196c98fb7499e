#!/usr/bin/env python3
"""Collect the artifact coordinates a Maven project needs from the local repository.

Resolves each project descriptor's effective model (parent chain, properties,
dependency and plugin management, BOM imports) and follows every referenced
coordinate whose descriptor is cached locally.

Usage:
    python collect_artifacts.py resolve <pom.xml or project dir> [...] [--format json] [-o out.json]
    python collect_artifacts.py scan <dir> [...] [--no-expand-versions]

The repository defaults to ~/.m2/repository; set MAVEN_REPO_LOCAL or pass
--repo to use another one.
"""

from gavcollect.cli import main

if __name__ == "__main__":
    main()
