import os

from flask import send_file
from flask_restx import Namespace, Resource, reqparse
from flask_jwt_extended import jwt_required
from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.datastructures import FileStorage
from models.client import Client
from models.document import Document
from models.event import Event
from schemas.document import DocumentSchema
from app import db
from api.errors import not_found, server_error
from utils.file_storage import save_file, delete_file, get_file_path
from utils.pagination import paginate
from utils.query import search_filter
from utils.security import current_user
import logging

logger = logging.getLogger(__name__)

# Setting up API namespace
api = Namespace('documents', description='Document operations')

# Set up schemas
document_schema = DocumentSchema()
documents_schema = DocumentSchema(many=True)

# Query parameter parser
document_parser = reqparse.RequestParser()
document_parser.add_argument('page', type=int, location='args', help='Page number')
document_parser.add_argument('limit', type=int, location='args', help='Items per page')
document_parser.add_argument('search', type=str, location='args', help='Search original file name')
document_parser.add_argument('clientId', type=int, location='args', help='Filter by client ID')
document_parser.add_argument('eventId', type=int, location='args', help='Filter by event ID')
document_parser.add_argument('mimeType', type=str, location='args', help='Filter by MIME type')

# Setup file upload parser
document_upload_parser = reqparse.RequestParser()
document_upload_parser.add_argument('file', type=FileStorage, location='files', help='Document file')
document_upload_parser.add_argument('client_id', type=int, location='form', help='Client ID')
document_upload_parser.add_argument('event_id', type=int, location='form', help='Event ID')
document_upload_parser.add_argument('name', type=str, location='form', help='Display name (defaults to the file name)')

@api.route('')
class DocumentList(Resource):
    @jwt_required()
    @api.expect(document_parser)
    @api.response(200, 'Success')
    def get(self):
        """Get all documents with optional filtering and pagination"""
        args = document_parser.parse_args()

        query = Document.query

        if args.get('search'):
            query = query.filter(search_filter(args['search'], Document.original_name))

        if args.get('clientId'):
            query = query.filter(Document.client_id == args['clientId'])

        if args.get('eventId'):
            query = query.filter(Document.event_id == args['eventId'])

        if args.get('mimeType'):
            query = query.filter(Document.mime_type == args['mimeType'])

        query = query.order_by(Document.uploaded_at.desc(), Document.id.desc())

        result = paginate(query, args.get('page'), args.get('limit'), documents_schema)

        logger.info(f"Listed documents: {len(result['data'])} of {result['pagination']['total']} total")
        return result, 200

@api.route('/upload')
class DocumentUpload(Resource):
    @jwt_required()
    @api.expect(document_upload_parser)
    @api.response(201, 'Document uploaded successfully')
    @api.response(400, 'Missing file or unknown client/event')
    def post(self):
        """Upload a document, optionally linked to a client and/or event"""
        args = document_upload_parser.parse_args()

        upload = args.get('file')
        if not upload or not upload.filename:
            return {'error': 'No file uploaded'}, 400

        if args.get('client_id') and db.session.get(Client, args['client_id']) is None:
            return {'error': 'Client not found'}, 400

        if args.get('event_id') and db.session.get(Event, args['event_id']) is None:
            return {'error': 'Event not found'}, 400

        stored_name, size = save_file(upload)

        try:
            document = Document(
                client_id=args.get('client_id'),
                event_id=args.get('event_id'),
                filename=stored_name,
                original_name=args.get('name') or upload.filename,
                file_path=get_file_path(stored_name),
                file_size=size,
                mime_type=upload.mimetype or 'application/octet-stream',
                uploaded_by=int(current_user().id),
            )
            db.session.add(document)
            db.session.commit()
        except SQLAlchemyError as e:
            # Do not leave an orphaned file behind
            delete_file(stored_name)
            return server_error('upload document', e)

        logger.info(
            f"Uploaded document: {document.original_name} (document_id: {document.id}, "
            f"size: {document.file_size}, mime_type: {document.mime_type})"
        )
        return {'data': document_schema.dump(document)}, 201

@api.route('/stats')
class DocumentStats(Resource):
    @jwt_required()
    @api.response(200, 'Success')
    def get(self):
        """Document count, total size and count per MIME type"""
        total, total_size = db.session.query(
            func.count(Document.id),
            func.coalesce(func.sum(Document.file_size), 0)
        ).one()

        by_type = (
            db.session.query(Document.mime_type, func.count(Document.id))
            .group_by(Document.mime_type)
            .all()
        )

        return {
            'total_documents': total,
            'total_size': int(total_size),
            'by_mime_type': {mime_type: count for mime_type, count in by_type},
        }, 200

@api.route('/<int:id>')
class DocumentDetail(Resource):
    @jwt_required()
    @api.response(200, 'Success')
    @api.response(404, 'Document not found')
    def get(self, id):
        """Get a document by ID"""
        document = db.session.get(Document, id)
        if document is None:
            return not_found('Document')
        return {'data': document_schema.dump(document)}, 200

    @jwt_required()
    @api.response(204, 'Document deleted successfully')
    @api.response(404, 'Document not found')
    def delete(self, id):
        """Delete a document and its stored file"""
        document = db.session.get(Document, id)
        if document is None:
            return not_found('Document')

        stored_name, original_name = document.filename, document.original_name

        try:
            db.session.delete(document)
            db.session.commit()
        except SQLAlchemyError as e:
            return server_error('delete document', e)

        delete_file(stored_name)

        logger.info(f"Deleted document: {original_name} (document_id: {id})")
        return '', 204

@api.route('/<int:id>/download')
class DocumentDownload(Resource):
    @jwt_required()
    @api.response(200, 'Success')
    @api.response(404, 'Document or file not found')
    def get(self, id):
        """Download the stored file as an attachment"""
        document = db.session.get(Document, id)
        if document is None:
            return not_found('Document')

        file_path = get_file_path(document.filename)
        if not os.path.exists(file_path):
            logger.warning(f"Stored file missing for document_id {id}: {file_path}")
            return {'error': 'File not found'}, 404

        return send_file(
            file_path,
            mimetype=document.mime_type,
            download_name=document.original_name,
            as_attachment=True
        )
