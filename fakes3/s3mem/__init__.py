"""In-memory storage backend with buckets, objects and versions."""