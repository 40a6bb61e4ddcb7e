"""Command line interface for context-deploy"""
