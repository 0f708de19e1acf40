"""Platform components: naming, storage, items and archive pipelines."""
