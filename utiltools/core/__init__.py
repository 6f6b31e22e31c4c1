"""Core Application Layer: orchestrates the named operations.

Validates arguments, owns the primitives' state through UtilityService and
dispatches operations by name through the CommandHandler.
"""
