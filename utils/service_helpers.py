import logging

logger = logging.getLogger("listings")


# Columns of the services table a caller may set directly
BASIC_SERVICE_FIELDS = (
    "title",
    "description",
    "price",
    "currency",
    "images",
    "location",
    "duration_hours",
    "max_capacity",
    "amenities",
    "status",
    "category_id",
)

# Attributes every service may carry, whatever its category
GENERAL_ATTRIBUTE_FIELDS = (
    "duration_days",
    "group_size_min",
    "group_size_max",
    "best_time_to_visit",
    "what_to_bring",
    "age_restrictions",
    "health_requirements",
    "accessibility_features",
    "sustainability_certified",
    "eco_friendly",
    "tags",
    "contact_info",
    "booking_requirements",
    "cancellation_policy",
    "website_url",
    "social_media",
    "emergency_phone",
    "booking_deadline_hours",
    "payment_methods",
    "refund_policy",
)

_EVENT_TICKETING_FIELDS = (
    "event_status",
    "ticket_price",
    "early_bird_price",
    "internal_ticketing",
    "ticket_types",
    "ticket_purchase_link",
    "event_location",
    "event_highlights",
    "event_inclusions",
    "event_prerequisites",
    "meals_provided",
)

CATEGORY_ATTRIBUTE_FIELDS = {
    "hotel": (
        "room_types",
        "check_in_time",
        "check_out_time",
        "star_rating",
        "facilities",
        "total_rooms",
        "room_amenities",
        "nearby_attractions",
        "parking_available",
        "pet_friendly",
        "breakfast_included",
        "property_type",
        "wifi_available",
        "minimum_stay",
        "maximum_guests",
        "common_facilities",
        "generator_backup",
        "smoking_allowed",
        "children_allowed",
        "disabled_access",
        "concierge_service",
        "house_rules",
        "local_recommendations",
        "check_in_process",
    ),
    "tour": (
        "itinerary",
        "included_items",
        "excluded_items",
        "difficulty_level",
        "minimum_age",
        "languages_offered",
        "tour_highlights",
        "meeting_point",
        "end_point",
        "transportation_included",
        "meals_included",
        "guide_included",
        "accommodation_included",
    ),
    "transport": (
        "vehicle_type",
        "vehicle_capacity",
        "pickup_locations",
        "dropoff_locations",
        "route_description",
        "driver_included",
        "air_conditioning",
        "gps_tracking",
        "fuel_included",
        "tolls_included",
        "insurance_included",
        "license_required",
        "booking_notice_hours",
        "usb_charging",
        "child_seat",
        "roof_rack",
        "towing_capacity",
        "four_wheel_drive",
        "automatic_transmission",
        "transport_terms",
    ),
    "restaurant": (
        "cuisine_type",
        "opening_hours",
        "menu_items",
        "dietary_options",
        "average_cost_per_person",
        "reservations_required",
        "outdoor_seating",
        "live_music",
        "private_dining",
        "alcohol_served",
        "price_range",
        "advance_booking_days",
        "dress_code",
        "menu_highlights",
        "restaurant_atmosphere",
        "restaurant_notes",
    ),
    "guide": (
        "languages_spoken",
        "specialties",
        "certifications",
        "years_experience",
        "service_area",
        "license_number",
        "emergency_contact",
        "first_aid_certified",
        "vehicle_owned",
    ),
    "activity": _EVENT_TICKETING_FIELDS,
    "rental": (
        "rental_items",
        "rental_duration",
        "deposit_required",
        "insurance_required",
        "delivery_available",
        "maintenance_included",
        "replacement_value",
        "delivery_radius",
        "usage_instructions",
        "maintenance_requirements",
        "training_provided",
        "cleaning_included",
        "repair_service",
        "equipment_condition",
        "rental_terms",
    ),
    "event": _EVENT_TICKETING_FIELDS + (
        "event_type",
        "event_date",
        "event_duration_hours",
        "max_participants",
        "materials_included",
        "prerequisites",
        "event_datetime",
        "registration_deadline",
        "learning_outcomes",
        "instructor_credentials",
        "certificates_provided",
        "refreshments_included",
        "take_home_materials",
        "photography_allowed",
        "recording_allowed",
        "group_discounts",
        "event_description",
        "event_cancellation_policy",
        "scan_enabled",
    ),
    "agency": (
        "services_offered",
        "destinations_covered",
        "booking_fee",
        "customization_available",
        "emergency_support",
        "iata_number",
        "specializations",
        "success_stories",
        "insurance_brokerage",
        "visa_assistance",
        "group_bookings",
        "corporate_accounts",
        "agency_description",
    ),
    "flight": (
        "flight_number",
        "airline",
        "aircraft_type",
        "departure_city",
        "arrival_city",
        "departure_airport",
        "arrival_airport",
        "departure_time",
        "arrival_time",
        "duration_minutes",
        "economy_price",
        "business_price",
        "first_class_price",
        "total_seats",
        "available_seats",
        "flight_class",
        "flight_status",
        "baggage_allowance",
        "flight_amenities",
        "flexible_booking",
        "lounge_access",
        "priority_boarding",
        "flight_meals_included",
        "flight_notes",
    ),
    "other": (),
}


class ServiceHelpers:
    """
    Reusable helper methods for service listings.

    A service stores the columns shared by every category on the model and
    the rest in its attributes JSON. Which attribute keys are accepted
    depends on the kind of the service's category.
    """

    @staticmethod
    def allowed_attribute_fields(category_kind):
        """
        Returns the attribute keys a service of the given category kind may carry.

        Args:
            category_kind (str): ServiceCategory.kind value

        Returns:
            set: General attribute keys plus the keys of that kind
        """
        return set(GENERAL_ATTRIBUTE_FIELDS) | set(CATEGORY_ATTRIBUTE_FIELDS.get(category_kind, ()))

    @staticmethod
    def split_updates(category_kind, updates):
        """
        Splits requested changes into model columns and attributes.

        Keys that are neither a basic column nor an allowed attribute of the
        category kind are dropped. None values are ignored.

        Args:
            category_kind (str): ServiceCategory.kind of the target service
            updates (dict): Requested changes

        Returns:
            tuple: (basic fields dict, attributes dict, list of dropped keys)
        """
        allowed_attributes = ServiceHelpers.allowed_attribute_fields(category_kind)
        basic, attributes, dropped = {}, {}, []

        for key, value in updates.items():
            if value is None:
                continue
            if key in BASIC_SERVICE_FIELDS:
                basic[key] = value
            elif key in allowed_attributes:
                attributes[key] = value
            else:
                dropped.append(key)

        if dropped:
            logger.debug(f"Dropped unknown service fields for kind {category_kind}: {dropped}")
        return basic, attributes, dropped
