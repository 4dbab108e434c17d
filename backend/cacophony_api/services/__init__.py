"""
Cacophony API - Services
"""
