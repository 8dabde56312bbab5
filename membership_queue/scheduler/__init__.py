"""Background scheduling for the business rule batches."""
