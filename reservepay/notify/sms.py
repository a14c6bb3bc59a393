"""SMS delivery through Twilio"""

import anyio
from twilio.rest import Client as TwilioClient


class SmsSender:
    def __init__(self, account_sid: str, auth_token: str, from_number: str):
        self.account_sid = account_sid
        self.auth_token = auth_token
        self.from_number = from_number

    async def send(self, to: str, body: str) -> str:
        client = TwilioClient(self.account_sid, self.auth_token)

        def _send() -> str:
            message = client.messages.create(
                body=body,
                from_=self.from_number,
                to=to,
            )
            return message.sid

        return await anyio.to_thread.run_sync(_send, abandon_on_cancel=True)
