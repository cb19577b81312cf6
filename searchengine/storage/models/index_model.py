from tortoise import fields, models


class IndexEntry(models.Model):
    """
    Inverted index row: the lemma occurs ``rank`` times on the page.
    """
    id = fields.IntField(pk=True)

    page = fields.ForeignKeyField(
        "models.Page",
        related_name="index_entries",
        on_delete=fields.CASCADE,
    )
    lemma = fields.ForeignKeyField(
        "models.Lemma",
        related_name="index_entries",
        on_delete=fields.CASCADE,
    )
    rank = fields.FloatField()

    class Meta:
        table = "search_index"
        unique_together = (("page", "lemma"),)
