"""Configuration module for the training admin dashboard."""

import logging
import os

import boto3
from aws_lambda_powertools.logging import Logger
from dotenv import load_dotenv

load_dotenv()

AWS_PROFILE = os.getenv("AWS_PROFILE")
AWS_REGION = os.getenv("AWS_REGION")
S3_BUCKET_NAME = os.getenv("S3_BUCKET_NAME")
STAGE = os.getenv("STAGE")

FIREBASE_DATABASE_URL = os.getenv("FIREBASE_DATABASE_URL")
FIREBASE_CREDENTIALS_PATH = os.getenv("FIREBASE_CREDENTIALS_PATH")

PAYMENTS_PAGE_SIZE = int(os.getenv("PAYMENTS_PAGE_SIZE", "8"))
DETAIL_FETCH_MAX_WORKERS = int(os.getenv("DETAIL_FETCH_MAX_WORKERS", "8"))

# SimpleCache holds one payment detail mapping per viewing session.
CACHE_THRESHOLD = int(os.getenv("CACHE_THRESHOLD", "5000"))
PAYMENT_DETAIL_CACHE_TIMEOUT_SECONDS = int(os.getenv("PAYMENT_DETAIL_CACHE_TIMEOUT_SECONDS", "43200"))

if STAGE == "dev":
    session = boto3.session.Session(profile_name=AWS_PROFILE, region_name=AWS_REGION)
else:
    session = boto3.session.Session() # Use the default session (e.g., in AppRunner)

s3_client = session.client("s3")

logger: Logger = Logger(service="training-dashboard")

for name in ['boto', 'urllib3', 's3transfer', 'boto3', 'botocore', 'nose', 'google', 'firebase_admin']:
    logging.getLogger(name).setLevel(logging.CRITICAL)
