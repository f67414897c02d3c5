"""
DeliveryMaster relay - resilient forwarding layer for the Apps Script backend.
"""
