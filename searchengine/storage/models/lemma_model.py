from tortoise import fields, models


class Lemma(models.Model):
    """
    Site-wide lemma frequency: how many times the lemma occurs across all
    pages of the site.
    """
    id = fields.IntField(pk=True)

    site = fields.ForeignKeyField(
        "models.Site",
        related_name="lemmas",
        on_delete=fields.CASCADE,
    )
    lemma = fields.CharField(max_length=255)
    frequency = fields.IntField(default=0)

    class Meta:
        table = "lemma"
        unique_together = (("site", "lemma"),)
