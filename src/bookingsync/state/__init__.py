"""State layer.

Per-domain cache stores, the change events that invalidate them, and the
purely local cart reducer.
"""
