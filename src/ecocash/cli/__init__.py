"""
Command line interface for the EcoCash SDK.
"""
