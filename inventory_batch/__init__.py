"""
inventory_batch -- Background expiry of pending acquisition requests.

Provides the Expiry Scheduler: an in-process polling loop that
auto-declines pending requests once their deadline has passed, racing
safely against manual approval through the request compare-and-swap.

Architecture:
    inventory_batch/ is a top-level package.  Nothing in inventory_kernel/
    imports from inventory_batch.  Expiry evaluation is pure
    (domain/expiry.py); all timestamps come from an injected Clock.
"""
