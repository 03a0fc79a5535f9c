# users/signals.py

from __future__ import annotations

from django.contrib.auth import get_user_model
from django.contrib.auth.signals import user_logged_in, user_logged_out
from django.db.models.signals import post_save
from django.dispatch import receiver

from users.session import invalidate_session_role

User = get_user_model()


@receiver(post_save, sender=User)
def drop_cached_role_on_save(sender, instance, **kwargs):
    invalidate_session_role(instance.pk)


@receiver(user_logged_in)
@receiver(user_logged_out)
def drop_cached_role_on_auth_change(sender, request, user, **kwargs):
    if user is not None:
        invalidate_session_role(user.pk)
