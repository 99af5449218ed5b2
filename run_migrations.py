#!/usr/bin/env python
"""Script to run database migrations."""

from hirescore.core.logging import configure_logging
from hirescore.migrations.runner import upgrade_to_head

if __name__ == "__main__":
    configure_logging()
    print("Running database migrations...")
    upgrade_to_head()
    print("Migrations completed successfully!")
