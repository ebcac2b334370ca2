"""
Upstream Provider Connectors

Each provider has its own subfolder with an api_client.py holding the REST logic.
"""
