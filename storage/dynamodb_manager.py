"""DynamoDB manager for event storage operations."""
import logging
import uuid
from datetime import datetime, timezone
from typing import List, Optional

import boto3
from boto3.dynamodb.conditions import Attr
from botocore.exceptions import ClientError

from processor.models import Event
from storage.backend import BackendConfig

logger = logging.getLogger(__name__)


def utc_now_iso() -> str:
    """Current UTC time as an ISO 8601 string."""
    return datetime.now(timezone.utc).isoformat()


class DynamoDBManager:
    """Manager for DynamoDB operations on the events table."""

    OPTIONAL_FIELDS = ('image_url', 'thumbnail_url', 'image_filename')

    def __init__(self, config: BackendConfig):
        """
        Initialize DynamoDB client and table reference.

        Args:
            config: Remote backend settings
        """
        self.table_name = config.table_name
        self.dynamodb = boto3.resource(
            'dynamodb',
            region_name=config.region_name,
            endpoint_url=config.endpoint_url
        )
        self.table = self.dynamodb.Table(config.table_name)
        logger.info(f"Initialized DynamoDBManager for table: {config.table_name}")

    def query_range(self, start: str, end: str) -> List[Event]:
        """
        Retrieve events whose date falls within [start, end].

        Args:
            start: First date (YYYY-MM-DD), inclusive
            end: Last date (YYYY-MM-DD), inclusive

        Returns:
            Events ordered by date, then start_time

        Raises:
            ClientError: If the scan fails
        """
        logger.info(f"Scanning DynamoDB table for events between {start} and {end}")

        try:
            response = self.table.scan(
                FilterExpression=Attr('date').between(start, end)
            )
            items = response.get('Items', [])

            # Handle pagination
            while 'LastEvaluatedKey' in response:
                response = self.table.scan(
                    FilterExpression=Attr('date').between(start, end),
                    ExclusiveStartKey=response['LastEvaluatedKey']
                )
                items.extend(response.get('Items', []))

        except ClientError as e:
            logger.error(f"Error scanning DynamoDB table: {e}")
            raise

        events = []
        for item in items:
            event = self._item_to_event(item)
            if event:
                events.append(event)

        events.sort(key=Event.sort_key)
        logger.info(f"Retrieved {len(events)} events from DynamoDB")
        return events

    def get_event(self, event_id: str) -> Optional[Event]:
        """
        Load a single event by id.

        Args:
            event_id: Event to load

        Returns:
            The stored Event, or None if no record exists

        Raises:
            ClientError: If the read fails
        """
        try:
            response = self.table.get_item(Key={'id': event_id})
        except ClientError as e:
            logger.error(f"Error reading event {event_id}: {e}")
            raise

        item = response.get('Item')
        if not item:
            return None
        return self._item_to_event(item)

    def insert_event(self, fields: dict) -> Event:
        """
        Insert a new event, assigning its id and timestamps.

        Args:
            fields: Validated client-owned fields

        Returns:
            The stored Event

        Raises:
            ClientError: If the write is rejected
        """
        now = utc_now_iso()
        item = dict(fields)
        item['id'] = str(uuid.uuid4())
        item['created_at'] = now
        item['updated_at'] = now
        item = self._prune_item(item)

        try:
            self.table.put_item(
                Item=item,
                ConditionExpression='attribute_not_exists(#id)',
                ExpressionAttributeNames={'#id': 'id'}
            )
        except ClientError as e:
            logger.error(f"Error inserting event '{fields.get('title')}': {e}")
            raise

        logger.info(f"Inserted event {item['id']}")
        return self._item_to_event(item)

    def update_event(self, event_id: str, patch: dict) -> Event:
        """
        Apply a partial update and refresh updated_at.

        Args:
            event_id: Event to update
            patch: Validated field changes

        Returns:
            The updated Event

        Raises:
            ClientError: If the event does not exist or the write is rejected
        """
        changes = dict(patch)
        changes['updated_at'] = utc_now_iso()

        names = {'#id': 'id'}
        values = {}
        assignments = []
        for i, (name, value) in enumerate(changes.items()):
            names[f"#f{i}"] = name
            values[f":v{i}"] = value
            assignments.append(f"#f{i} = :v{i}")

        try:
            response = self.table.update_item(
                Key={'id': event_id},
                UpdateExpression='SET ' + ', '.join(assignments),
                ConditionExpression='attribute_exists(#id)',
                ExpressionAttributeNames=names,
                ExpressionAttributeValues=values,
                ReturnValues='ALL_NEW'
            )
        except ClientError as e:
            logger.error(f"Error updating event {event_id}: {e}")
            raise

        logger.info(f"Updated event {event_id}", extra={'fields': sorted(patch)})
        return self._item_to_event(response['Attributes'])

    def delete_event(self, event_id: str) -> Optional[Event]:
        """
        Delete an event by id.

        Args:
            event_id: Event to delete

        Returns:
            The removed Event, or None if no record existed

        Raises:
            ClientError: If the delete is rejected
        """
        try:
            response = self.table.delete_item(
                Key={'id': event_id},
                ReturnValues='ALL_OLD'
            )
        except ClientError as e:
            logger.error(f"Error deleting event {event_id}: {e}")
            raise

        attributes = response.get('Attributes')
        if not attributes:
            logger.info(f"No event {event_id} to delete")
            return None

        logger.info(f"Deleted event {event_id}")
        return self._item_to_event(attributes)

    def _item_to_event(self, item: dict) -> Optional[Event]:
        """
        Convert DynamoDB item to Event object.

        Args:
            item: DynamoDB item dictionary

        Returns:
            Event object or None if conversion fails
        """
        try:
            return Event(
                id=item['id'],
                title=item['title'],
                description=item.get('description', ''),
                date=item['date'],
                start_time=item['start_time'],
                end_time=item['end_time'],
                location=item.get('location', ''),
                color=item['color'],
                organizer=item.get('organizer', ''),
                attendees=list(item.get('attendees', [])),
                image_url=item.get('image_url'),
                thumbnail_url=item.get('thumbnail_url'),
                image_filename=item.get('image_filename'),
                created_at=item.get('created_at', ''),
                updated_at=item.get('updated_at', '')
            )
        except (KeyError, TypeError) as e:
            logger.warning(f"Failed to convert item to Event: {e}")
            return None

    def _prune_item(self, item: dict) -> dict:
        """Drop unset optional image fields before writing."""
        return {
            name: value for name, value in item.items()
            if not (name in self.OPTIONAL_FIELDS and value is None)
        }
