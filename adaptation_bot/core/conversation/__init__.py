"""
Conversation layer: sessions, replies and the order form state machine.
"""
