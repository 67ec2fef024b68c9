"""Command-line interface for crafters-toolbox"""
