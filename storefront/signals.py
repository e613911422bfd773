"""Signals for the storefront module.

Allow other applications to react to content and loyalty events
(review moderation, bonus changes, post publication) without direct dependency.
"""

from __future__ import annotations

from django.dispatch import Signal

# Sent after a public review submission
# Arguments: review (Review)
review_submitted = Signal()

# Sent after a moderation decision
# Arguments: review (Review), actor (AdminContext)
review_moderated = Signal()

# Sent after a review is deleted
# Arguments: review_id (int), actor (AdminContext)
review_deleted = Signal()

# Sent after a bonus account name update
# Arguments: account (BonusAccount), actor (AdminContext)
bonus_account_renamed = Signal()

# Sent after bonuses are added to an account
# Arguments: account (BonusAccount), amount (int), source (str), actor (AdminContext or None)
bonuses_credited = Signal()

# Sent after bonuses are spent from an account
# Arguments: account (BonusAccount), amount (int), actor (AdminContext)
bonuses_deducted = Signal()

# Sent after the publication sweep promoted at least one post
# Arguments: count (int)
posts_published = Signal()

# Sent after a post is liked
# Arguments: slug (str), likes (int)
post_liked = Signal()
