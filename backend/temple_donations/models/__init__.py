from temple_donations.models.payment import Payment

__all__ = ["Payment"]
