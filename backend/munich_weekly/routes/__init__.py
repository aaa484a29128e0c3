# Routes package init
"""
Munich Weekly Backend — API Routes Package
===========================================

Route Inventory:
    - health.py:         GET  /health
    - files.py:          GET  /uploads/{path}
    - issues.py:         /api/issues            (list, detail, admin create/update)
    - submissions.py:    /api/submissions       (submit, upload, review, export)
    - votes.py:          /api/votes             (cast, check, batch check, cancel)
    - layout.py:         /api/layout            (masonry ordering, health, debug)
    - gallery.py:        /api/gallery           (published issues, featured carousel)
    - gallery_admin.py:  /api/gallery/admin     (issue configs, featured configs)
    - promotion.py:      /api/promotion         (promotion page and images)
    - users.py:          /api/users             (profile, account, admin user list)

Routes stay thin: they read the request, resolve identity through
dependencies, call a service and shape the response. Business rules live
in munich_weekly.services.
"""
