#!/usr/bin/env python3
"""
Simple example of using the SecureNotes SDK.
"""
import logging
import os

from securenotes_sdk import (
    ClientConfig, ComposerState, LocalWallet, SecureNotesClient, SecureNotesError
)


def main():
    """
    Demonstrate basic usage of the SecureNotesClient.

    This example shows how to:
    1. Connect a wallet and load the dashboard
    2. Enable secure notes for the account
    3. Send a gift icon and an encrypted note
    4. Read the notes addressed to the account
    """
    logging.basicConfig(level=logging.INFO)

    # Read configuration from environment
    PRIVATE_KEY = os.environ.get("PRIVATE_KEY")
    RECIPIENT = os.environ.get("RECIPIENT_ADDRESS")

    if not PRIVATE_KEY:
        print("ERROR: PRIVATE_KEY environment variable is required")
        return

    os.environ.setdefault("SECURENOTES_NETWORK", "localhost")
    config = ClientConfig.from_env()
    client = SecureNotesClient.connect(LocalWallet(PRIVATE_KEY), config)
    print(f"Connected as {client.address}")

    dashboard = client.load_dashboard()
    for name, error in dashboard.errors.items():
        print(f"Could not load {name}: {error}")

    for listing in (dashboard.catalog or {}).values():
        print(f"Icon #{listing.id}: {listing.display_name} - {listing.price} wei")
    for view in dashboard.gifts or []:
        print(f"Received {view.display_name} from {view.gift.sender}")

    try:
        if dashboard.composer_state is ComposerState.UNREGISTERED:
            record = client.messaging.enable_secure_notes()
            print(f"Secure notes enabled, key: {record.key_material}")

        if RECIPIENT:
            if dashboard.catalog:
                listing_id = min(dashboard.catalog)
                receipt = client.icons.purchase(listing_id, RECIPIENT)
                print(f"Gift sent in block {receipt.block_number}")

            receipt = client.messaging.send_note(RECIPIENT, "Happy Birthday!")
            print(f"Note sent: {receipt.tx_hash}")

        for note in client.messaging.inbox().newest_first():
            text = client.messaging.read_note(note.id)
            if text is not None:
                print(f"Note #{note.id} from {note.sender}: {text}")

    except SecureNotesError as e:
        print(f"Error: {e}")
    finally:
        client.disconnect()


if __name__ == "__main__":
    main()
