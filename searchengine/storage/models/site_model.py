from enum import Enum

from tortoise import fields, models


class SiteStatus(str, Enum):
    QUEUED = "QUEUED"
    INDEXING = "INDEXING"
    INDEXED = "INDEXED"
    FAILED = "FAILED"


class Site(models.Model):
    """
    A configured site and the state of its latest crawl run.
    """
    id = fields.IntField(pk=True)

    url = fields.CharField(max_length=512, unique=True)
    name = fields.CharField(max_length=255, default="")
    status = fields.CharEnumField(SiteStatus, max_length=16, default=SiteStatus.QUEUED, index=True)
    status_time = fields.DatetimeField(auto_now=True)
    last_error = fields.TextField(null=True)

    class Meta:
        table = "site"

    def __str__(self):
        return f"{self.url} [{self.status}]"
