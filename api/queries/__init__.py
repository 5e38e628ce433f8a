"""
Config-driven query endpoints: endpoint loading, parameter binding,
query execution and result shaping.
"""
