from typing import Optional

from pydantic import Field

from app.schemas.my_base_model import CustomBaseModel


class ImportWalletRequest(CustomBaseModel):
    """Request body for importing a wallet from its private key"""

    privateKey: Optional[str] = Field(None, description="Wallet private key, forwarded to the Fone node only")


class SendTransactionRequest(CustomBaseModel):
    """Request body for sending FONE.
    All fields are optional here so that missing ones are reported with a
    single 400 message by the endpoint.
    """

    privateKey: Optional[str] = Field(None, description="Sender private key")
    recipient: Optional[str] = Field(None, description="Recipient wallet address")
    amount: Optional[int | float | str] = Field(None, description="Amount to send, numeric or numeric string")
    message: Optional[str] = Field(None, description="Optional message attached to the transaction")
