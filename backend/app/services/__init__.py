# Services package init
"""
NoteMate Backend — Services Layer
==================================

What:  The analytics engine, sitting between the HTTP layer and the snapshot file.
Why:   Routes and middleware handle HTTP; services own the counters and views.
How:   AnalyticsService composes the three single-purpose services below and
       is attached to the app as `app.state.analytics`.

Service Inventory:
    - AnalyticsService: Owns the aggregate and its lock, checkpoint policy
    - EventRecorder: Applies one event to the aggregate (pure, no I/O)
    - InsightReporter: Dashboard, user activity, business insights, health views
    - SnapshotStore: Atomic JSON snapshot on disk, with retries

Why the recorder and reporter take the state as an argument:
    1. Testability: both run against a bare AggregateState, no lock or disk
    2. Replaceability: tests build their own AnalyticsService with a temp store
"""
