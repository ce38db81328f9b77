"""
ecaytracker dashboard API package.
"""
