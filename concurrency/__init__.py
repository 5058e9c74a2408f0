# SubSearch Concurrency Package
# =============================
# Reader/writer lock guarding the search index.

from concurrency.rwlock import ReadWriteLock
