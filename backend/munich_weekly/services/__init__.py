# Services package init
"""
Munich Weekly Backend — Services Layer
=======================================

What:  Business rules between the routes (HTTP) and the models (persistence).
How:   Each service is a module-level singleton whose methods take the
       request's AsyncSession as their first argument and raise the
       exceptions from munich_weekly.exceptions.

Service Inventory:
    - StorageService:          image validation and local file storage
    - ImageDimensionService:   width/height lookup for stored or remote images
    - MasonryOrderService:     two/four column ordering with a TTL cache
    - IssueService:            issue windows
    - SubmissionService:       submit, upload, review, delete
    - VoteService:             one vote per voter per submission
    - ArchiveService:          ZIP export of selected submissions
    - UserService:             profiles, account deletion, bans
    - GalleryIssueService:     published gallery reads
    - GalleryAdminService:     gallery issue configs and ordering
    - FeaturedService:         featured carousel configs
    - PromotionService:        promotion page and its images
"""
