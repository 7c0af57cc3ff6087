"""
nowgo - Build Go source files into deployable serverless functions.
"""

__version__ = "0.1.0"
