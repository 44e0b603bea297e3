"""
Models package.

Import all models here so they are registered with SQLAlchemy.
This file also makes it easy to import models from one place.
"""

from branch.models.user import User, UserType
from branch.models.repository import Repository
from branch.models.tech_stack import TechStack
from branch.models.ai_assistance import AIAssistance
from branch.models.service_usage import ServiceUsage
from branch.models.legacy_tag import LegacyTag
from branch.models.fork import Fork
from branch.models.social_connection import SocialConnection, ConnectionType
from branch.models.contributor import Contributor
from branch.models.unified_tag import UnifiedTag, EntityType, SourceType, TagCategory

# Export all models
__all__ = [
    "User",
    "UserType",
    "Repository",
    "TechStack",
    "AIAssistance",
    "ServiceUsage",
    "LegacyTag",
    "Fork",
    "SocialConnection",
    "ConnectionType",
    "Contributor",
    "UnifiedTag",
    "EntityType",
    "SourceType",
    "TagCategory",
]
