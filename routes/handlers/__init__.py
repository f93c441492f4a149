"""
Message Handlers
----------------
Handlers for inbound WhatsApp deliveries and the texts they send back.
"""
