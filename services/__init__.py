"""
Services for the image editor
"""
