"""MLP2 to MLP3 - Migrate MultilingualPress 2 data to MultilingualPress 3.

This package migrates the data a MultilingualPress 2 multisite network keeps
(module states, content links, redirect settings, custom languages) into the
tables and options used by MultilingualPress 3.

Main entry points:
    - CLI: mlp2to3 migrate --config config.yaml
    - API: from mlp2to3.core.migrator import run_migration
"""

__version__ = "1.0.0"
