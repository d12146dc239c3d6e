"""
mu-workflows

Environment lifecycle workflows: brings a network stack and an ECS cluster
stack up in dependency order and tears them down in reverse.
"""

__version__ = "0.1.0"
