"""Serverless entry point: the report uploader API behind API Gateway / Lambda function URLs."""
from mangum import Mangum

from report_uploader.main import create_app

handler = Mangum(create_app(), lifespan="off")
