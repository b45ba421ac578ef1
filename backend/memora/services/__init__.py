# Services package init
"""
Memora Backend — Services Layer
================================

What:  Use cases sitting between routes (HTTP) and the ORM (persistence).
How:   Services take the request's AsyncSession and the caller's user id,
       apply business rules, and return pydantic response models. They
       never commit; the session dependency does.

Service Inventory:
    - SignatureDetector: Magic-byte format identification (pure)
    - FileValidator: Layered accept/reject decision for uploads (pure)
    - ImageCompressor: Extension point applied to images before storage
    - AttachmentService: Ownership-scoped BLOB storage
    - NoteService: Note CRUD, pagination and search
    - AuthService: Registration and login
"""
