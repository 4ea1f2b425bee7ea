"""GitLab to Azure DevOps Migration Tool

Analyzes GitLab projects, mirrors their repositories into local workspaces and
pushes them into Azure DevOps, keeping an auditable record of every run.
"""

__version__ = '0.1.0'
__author__ = 'GitLab Migration Team'
__email__ = 'team@example.com'

from .cli.main import main

__all__ = ['main']
