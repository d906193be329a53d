from app import ma
from models.document import Document
from marshmallow import fields

class DocumentSchema(ma.SQLAlchemyAutoSchema):
    class Meta:
        model = Document
        load_instance = False
        include_fk = True
        exclude = ("file_path",)

    download_url = fields.Function(lambda document: f"/api/documents/{document.id}/download")
