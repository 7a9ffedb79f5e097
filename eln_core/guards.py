# eln_core/guards.py

from django.db import models

from eln_core.lifecycle import ImmutableFieldViolation


class BusinessIdGuardMixin(models.Model):
    """
    Prevent business_id from changing once a row exists.

    The lifecycle engine already rejects such patches; this guard covers
    direct .save() calls from admin actions, shells and data fixes.

    Escape hatch:
      - pass _guard_bypass=True to save(), OR
      - set instance._guard_bypass = True
    """

    GUARDED_FIELD = "business_id"
    GUARD_BYPASS_KWARG = "_guard_bypass"

    class Meta:
        abstract = True

    def save(self, *args, **kwargs):
        bypass = bool(
            kwargs.pop(self.GUARD_BYPASS_KWARG, False)
            or getattr(self, "_guard_bypass", False)
        )

        if not bypass and self.pk is not None and self.GUARDED_FIELD:
            old = (
                self.__class__.objects.filter(pk=self.pk)
                .values_list(self.GUARDED_FIELD, flat=True)
                .first()
            )
            new = getattr(self, self.GUARDED_FIELD, None)

            if old is not None and old != new:
                raise ImmutableFieldViolation(self.GUARDED_FIELD)

        return super().save(*args, **kwargs)
