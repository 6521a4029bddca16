"""
geco/cli - Command-line entry point
"""
