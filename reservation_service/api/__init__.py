"""
API package - HTTP surface of the reservation service
"""
