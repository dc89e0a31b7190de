"""
Deploy Info Service.

This service is responsible for:
- Querying git for commit, branch, author, tag and history metadata
- Classifying commits as successful deploys by message pattern
- Reporting deploy status, deploy count and the last successful deploy
- Serving the aggregate record over a read-only REST API
"""

__version__ = "1.0.0"
__description__ = "Git deploy metadata and deploy classification service"
