# Cloud Functions entry point when deploying from the repository root:
#   gcloud functions deploy drive-upload --runtime python312 --trigger-http --entry-point upload --source .
from cloud_function.drive_uploader.main import upload  # noqa: F401
