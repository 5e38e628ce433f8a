"""
One-shot SQL migration runner (`POST /migrate`).
"""
