"""
Harvestman REST API.

Provides DRF ViewSets for:
- Harvest (full CRUD + publish/match actions)
- Preorder (full CRUD + cancel/ready actions)
"""
