# Project Level Types
GCPProjectID = str

GCPRegion = str

# Google Cloud Storage Types
GCSBucketName = str

GCSObjectName = str

# Either gs://bucket/path, /bucket/path or bucket/path
GCSPathString = str

# Fully qualified KMS key name, projects/*/locations/*/keyRings/*/cryptoKeys/*
CMEKKeyName = str
