"""Cloud function that stores multipart photo uploads in a Google Drive folder."""
