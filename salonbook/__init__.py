"""Appointment availability and booking-conflict engine for salons and barbershops"""
