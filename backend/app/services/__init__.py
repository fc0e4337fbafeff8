# Services package init
"""
Circles Backend — Services Layer
==================================

Service Inventory:
    - FriendService:  suggestions, friend requests, friend list
    - ProfileService: profile read/update, picture, stats, search
    - FileService:    profile picture validation, storage and lookup

Services take the request's AsyncSession and the authenticated User as
arguments and return response models; they never touch HTTP objects.
"""
