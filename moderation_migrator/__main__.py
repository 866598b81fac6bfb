#!/usr/bin/env python3
"""
Main execution module for the moderation migration tool
"""

from moderation_migrator.cli.commands import main

if __name__ == "__main__":
    main()
