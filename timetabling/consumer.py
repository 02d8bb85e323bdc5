import json
import logging
import pika
import time
from dataclasses import asdict
from typing import Dict, Any, List, Tuple

from config.settings import get_rabbitmq_config, get_scheduler_config
from timetabling.errors import InputInfeasibleError
from timetabling.models.availability import Availability
from timetabling.models.lesson import AlternatingLesson, GroupLesson, Lesson, NormalLesson
from timetabling.models.result import SchedulingResult, SchedulingStatus
from timetabling.models.roster import Roster
from timetabling.models.school_class import SchoolClass
from timetabling.models.teacher import Teacher
from timetabling.services.optimizer import generate

logger = logging.getLogger(__name__)


def _periods(lesson: Dict[str, Any]) -> int:
    return lesson.get("periods_per_week", lesson.get("periodsPerWeek", 1))


def parse_lesson(data: Dict[str, Any], teachers: Dict[str, Teacher]) -> Lesson:
    """
    Converts one lesson entry into a Lesson value. Teachers are given by name.

    Expected format (one of):
        {"type": "normal", "name": "Math", "teacher": "Keller", "periods_per_week": 4}
        {"type": "alternating", "names": ["Music", "Art"], "teachers": ["Roth", "Berg"],
         "periods_per_week": 1}
        {"type": "group", "name": "PE", "teachers": ["Roth", "Berg"], "periods_per_week": 2}
    """
    def teacher(name):
        # Unknown names are kept so the engine can report them as infeasible input
        return teachers.get(name) or Teacher(name=name, availability=Availability.empty())

    kind = data.get("type", "normal")
    if kind == "normal":
        return NormalLesson(data["name"], teacher(data["teacher"]), _periods(data))
    if kind == "alternating":
        names = tuple(data["names"])
        return AlternatingLesson(names, tuple(teacher(n) for n in data["teachers"]), _periods(data))
    if kind == "group":
        return GroupLesson(data["name"], tuple(teacher(n) for n in data["teachers"]), _periods(data))
    raise ValueError(f"Unknown lesson type: {kind}")


def parse_timetable_request(data: Dict[str, Any]) -> Tuple[Roster, Dict[str, Any]]:
    """
    Converts JSON data received from RabbitMQ into a Roster.

    Args:
        data: Dictionary with the school data

    Expected format:
    {
        "days": 5,
        "periods_per_day": 8,
        "teachers": [{"name": "Keller", "email": "keller@school.org",
                      "availability": {"days": 5, "periodsPerDay": 8, "buffer": [255, ...]}}, ...],
        "classes": [{"name": "5B", "lessons": [<lesson>, ...]}, ...],
        "config": {"maxESIterations": 2000, ...},
        "seed": 42
    }

    A teacher without "availability" is available in every slot.

    Returns:
        Roster, scheduler config overrides
    """
    days = data.get("days", 5)
    periods_per_day = data.get("periods_per_day", data.get("periodsPerDay", 8))

    teachers: Dict[str, Teacher] = {}
    for entry in data.get("teachers", []):
        if "availability" in entry:
            availability = Availability.from_dict(entry["availability"])
        else:
            availability = Availability.full(days, periods_per_day)
        teachers[entry["name"]] = Teacher(
            name=entry["name"],
            availability=availability,
            email=entry.get("email"),
        )

    classes: List[SchoolClass] = []
    for entry in data.get("classes", []):
        classes.append(SchoolClass(
            name=entry["name"],
            lessons=[parse_lesson(lesson, teachers) for lesson in entry.get("lessons", [])],
        ))

    overrides = dict(data.get("config") or {})
    if "seed" in data:
        overrides["seed"] = data["seed"]

    roster = Roster(classes, list(teachers.values()), days, periods_per_day)
    return roster, overrides


def serialize_result(result: SchedulingResult) -> Dict[str, Any]:
    """Converts a SchedulingResult into a JSON-serializable dictionary."""
    timetable = result.timetable
    return {
        "status": result.status.value,
        "schedule": timetable.to_dict(),
        "teacher_schedule": timetable.teacher_view(),
        "statistics": {
            "hard_constraints_satisfied": result.is_feasible,
            "cost": result.cost,
            "iterations": result.iterations,
            **result.report.to_dict(),
        },
        "violations": [violation.to_dict() for violation in result.violations],
        "warnings": list(result.warnings),
    }


def process_generate_timetable(data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Processes a timetable generation request.

    Args:
        data: School data to schedule

    Returns:
        Dictionary with the generation result
    """
    try:
        logger.info("Starting timetable generation...")

        roster, overrides = parse_timetable_request(data)
        config = get_scheduler_config()
        config = type(config).from_dict({**asdict(config), **overrides})

        logger.info(f"Data parsed: {len(roster.classes)} classes, "
                    f"{len(roster.teachers)} teachers, "
                    f"{sum(c.total_periods_per_week() for c in roster.classes)} periods to place")

        result = generate(
            roster.classes,
            roster.teachers,
            config,
            days=roster.days,
            periods_per_day=roster.periods_per_day,
        )

        logger.info(f"Generation completed. Status: {result.status.value}, cost: {result.cost}")

        if result.status == SchedulingStatus.UNSCHEDULABLE:
            message = f"Best effort timetable with {result.report.hard_violations} hard violations"
        else:
            message = "Timetable generated successfully"

        return {
            "status": "success",
            "message": message,
            "data": serialize_result(result),
        }

    except InputInfeasibleError as e:
        logger.warning(f"Infeasible timetable request: {e}")
        return {
            "status": "error",
            "message": str(e),
            "issues": [issue.to_dict() for issue in e.issues],
        }

    except Exception as e:
        logger.error(f"Error generating timetable: {e}", exc_info=True)
        return {
            "status": "error",
            "message": f"Error generating timetable: {str(e)}"
        }


def _reply(ch, properties, result: Dict[str, Any]):
    if properties.reply_to:
        ch.basic_publish(
            exchange="",
            routing_key=properties.reply_to,
            properties=pika.BasicProperties(correlation_id=properties.correlation_id),
            body=json.dumps(result),
        )
        logger.info(f"Response sent for correlation_id: {properties.correlation_id}")


def callback(ch, method, properties, body):
    """Message callback - processes the request, replies, then acknowledges"""
    correlation_id = properties.correlation_id

    try:
        logger.info(f"Received message: {correlation_id}")
        message = json.loads(body)
        command = message.get("pattern")

        if command == "test_connection":
            _reply(ch, properties, {"status": "success", "message": "Connection established"})

        elif command == "generate_timetable":
            logger.info("Processing generate_timetable request")
            result = process_generate_timetable(message.get("data", {}))
            _reply(ch, properties, result)

        else:
            _reply(ch, properties, {"status": "error", "message": f"Unknown command: {command}"})

    except json.JSONDecodeError as e:
        logger.error(f"Invalid JSON in message: {e}")

    except Exception as e:
        logger.error(f"Unexpected error in callback: {e}", exc_info=True)

    finally:
        try:
            ch.basic_ack(delivery_tag=method.delivery_tag)
        except Exception as e:
            logger.warning(f"Error acknowledging message: {e}")


def create_connection_and_channel(rabbitmq_config):
    """Create RabbitMQ connection and channel with proper configuration"""
    connection_params = pika.ConnectionParameters(
        host=rabbitmq_config["host"],
        port=rabbitmq_config["port"],
        virtual_host=rabbitmq_config["vhost"],
        credentials=pika.PlainCredentials(
            username=rabbitmq_config["username"], password=rabbitmq_config["password"]
        ),
        heartbeat=rabbitmq_config["heartbeat"],
        blocked_connection_timeout=300,
        socket_timeout=10,
        connection_attempts=rabbitmq_config["connection_attempts"],
        retry_delay=rabbitmq_config["retry_delay"],
    )

    connection = pika.BlockingConnection(connection_params)
    channel = connection.channel()

    queue_name = rabbitmq_config["queue_name"]
    channel.queue_declare(queue=queue_name, durable=True)
    channel.basic_qos(prefetch_count=1)

    return connection, channel, queue_name


def start_consumer():
    """Start the RabbitMQ consumer with reconnection and back-off"""
    rabbitmq_config = get_rabbitmq_config()
    max_reconnect_attempts = 10
    reconnect_delay = 5
    current_attempt = 0

    while current_attempt < max_reconnect_attempts:
        connection = None
        channel = None

        try:
            logger.info(
                f"Starting consumer (attempt {current_attempt + 1}/{max_reconnect_attempts})"
            )

            connection, channel, queue_name = create_connection_and_channel(
                rabbitmq_config
            )

            # Reset attempt counter on successful connection
            current_attempt = 0

            channel.basic_consume(queue=queue_name, on_message_callback=callback)

            logger.info(f"Consumer started, listening on queue: {queue_name}")
            channel.start_consuming()

        except pika.exceptions.StreamLostError as e:
            logger.error(
                f"Connection lost: {e}. Attempt {current_attempt + 1}/{max_reconnect_attempts}"
            )
            current_attempt += 1

        except pika.exceptions.AMQPConnectionError as e:
            logger.error(
                f"AMQP Connection error: {e}. Attempt {current_attempt + 1}/{max_reconnect_attempts}"
            )
            current_attempt += 1

        except KeyboardInterrupt:
            logger.info("Shutdown signal received, stopping consumer...")
            break

        except Exception as e:
            logger.error(
                f"Unexpected error: {e}. Attempt {current_attempt + 1}/{max_reconnect_attempts}",
                exc_info=True,
            )
            current_attempt += 1

        finally:
            try:
                if channel and not channel.is_closed:
                    channel.stop_consuming()
                    channel.close()
            except Exception as e:
                logger.warning(f"Error closing channel: {e}")

            try:
                if connection and not connection.is_closed:
                    connection.close()
            except Exception as e:
                logger.warning(f"Error closing connection: {e}")

        if current_attempt < max_reconnect_attempts:
            logger.info(f"Reconnecting in {reconnect_delay} seconds...")
            time.sleep(reconnect_delay)
            # Exponential backoff with max delay of 60 seconds
            reconnect_delay = min(reconnect_delay * 1.5, 60)

    logger.error(
        f"Max reconnection attempts ({max_reconnect_attempts}) reached. Exiting."
    )


if __name__ == "__main__":
    start_consumer()
