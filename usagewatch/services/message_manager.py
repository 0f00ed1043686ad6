import os
import logging
import requests
from google.oauth2 import service_account
from google.auth.transport.requests import Request

from usagewatch.utils.constants import CATEGORY_APP_DELETED, CATEGORY_NEW_APP_DETECTED

logger = logging.getLogger(__name__)


class MessageManager:

    # FCM HTTP v1 API URL
    # project_id comes from the service account key
    FCM_ENDPOINT = "https://fcm.googleapis.com/v1/projects/{project_id}/messages:send"
    SCOPES = ['https://www.googleapis.com/auth/firebase.messaging']
    SERVICE_ACCOUNT_PATH = os.getenv("FCM_SERVICE_ACCOUNT_PATH", "serviceAccountKey.json")

    @staticmethod
    def construct_message(category: str, display_name: str):
        # title/body shown on the guardian's device
        if category == CATEGORY_APP_DELETED:
            return {
                "title": "App Deleted",
                "body": f"{display_name} was removed from your child's device.",
            }

        if category == CATEGORY_NEW_APP_DETECTED:
            return {
                "title": "New App Detected",
                "body": f"{display_name} has been installed on your child's device.",
            }

        return {"title": "WatchWise", "body": f"Activity update for {display_name}."}

    @staticmethod
    def _get_access_token():
        # OAuth2 access token from the service account key
        key_path = MessageManager.SERVICE_ACCOUNT_PATH

        if not os.path.exists(key_path):
            logger.warning(f"Service account key not found at {key_path}")
            return None, None

        try:
            creds = service_account.Credentials.from_service_account_file(
                key_path, scopes=MessageManager.SCOPES
            )
            creds.refresh(Request())
            return creds.token, creds.project_id
        except Exception as e:
            logger.error(f"Failed to get access token: {e}")
            return None, None

    @staticmethod
    def send_push_notification(fcm_token: str, title: str, body: str, data: dict = None):
        # FCM HTTP v1 push; returns True on delivery to FCM
        if not fcm_token:
            logger.warning("No FCM token provided")
            return False

        access_token, project_id = MessageManager._get_access_token()
        if not access_token or not project_id:
            logger.error("Cannot send notification: missing credentials")
            return False

        message = {
            "message": {
                "token": fcm_token,
                "notification": {
                    "title": title,
                    "body": body
                },
                # FCM data values must be strings
                "data": {k: str(v) for k, v in (data or {}).items()},
                "apns": {
                    "payload": {"aps": {"sound": "default"}}
                }
            }
        }

        headers = {
            "Authorization": f"Bearer {access_token}",
            "Content-Type": "application/json"
        }

        url = MessageManager.FCM_ENDPOINT.format(project_id=project_id)

        try:
            response = requests.post(url, headers=headers, json=message, timeout=10)
            if response.status_code == 200:
                logger.info(f"Notification sent to {fcm_token[:10]}...")
                return True
            logger.error(f"FCM Send Failed: {response.text}")
            return False
        except requests.RequestException as e:
            logger.error(f"HTTP Request failed: {e}")
            return False
