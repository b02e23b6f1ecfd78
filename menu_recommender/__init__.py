"""
Menu item recommendations for the restaurant / hotel ordering platform.
"""
