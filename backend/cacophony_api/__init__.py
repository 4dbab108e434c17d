"""
Cacophony API - wildlife monitoring device management service
"""
