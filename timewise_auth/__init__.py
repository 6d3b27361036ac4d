"""TimeWise auth core: token issuance, verification, rotation and revocation."""

__version__ = "1.0.0"
