"""
HTTP and WebSocket surface
"""
