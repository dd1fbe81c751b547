"""UDP file fetch (stop-and-wait)

A requestor asks a responder for a file by name; the responder streams it back
one block per datagram and waits for an "ack" before sending the next block.
An empty datagram marks the end of the transfer.

Layout:
- net: datagram endpoint with per-call receive deadlines
- exchange: ack-wait / block-receive state machine shared by both roles
- paths: directory validation and path containment
- requestor / responder: the two protocol roles
"""

__all__ = []
