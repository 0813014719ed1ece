"""
Command-line interface for logpush
"""
