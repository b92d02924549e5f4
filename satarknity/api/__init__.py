"""
Satarknity - API Module
"""
