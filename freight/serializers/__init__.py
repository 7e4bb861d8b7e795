"""
Freight serializers.
"""
