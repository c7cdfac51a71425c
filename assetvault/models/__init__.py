from assetvault.models.account import Plan, Profile, StorageUsage
from assetvault.models.asset import Asset
from assetvault.models.catalog import Product
from assetvault.models.project import Project, ProjectDocument, Space, SpaceImage

__all__ = [
    "Asset",
    "Plan",
    "Product",
    "Profile",
    "Project",
    "ProjectDocument",
    "Space",
    "SpaceImage",
    "StorageUsage",
]
