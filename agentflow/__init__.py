"""
Agent Flow Engine - executes studio-authored conversation flows
"""
__version__ = "0.1.0"
