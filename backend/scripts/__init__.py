"""
Backend Scripts Module

This module contains utility scripts for database operations and maintenance.

Available scripts:
    - seed_data.py: Creates a sample team, project and dev tokens
    
Usage:
    python -m scripts.seed_data
"""

