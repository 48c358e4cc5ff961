"""
Dialogue state machine for the scheduling flow.

Modules:
- models: States, working memory, results and invocation context
- state_resolver: Effective state for an inbound message
- profile_gate: Mandatory profile checks before booking
- menus: Menu templates
- booking_actions: Booking menu branches shared by several states
- handlers: One transition function per state
- dispatcher: ConversationFlow entry point
"""
